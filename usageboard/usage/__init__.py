"""Usage reporting: query model, paginated aggregation and dashboard summaries."""

from usageboard.usage.aggregator import PAGE_CEILING, fetch_all_pages
from usageboard.usage.client import UsageClient
from usageboard.usage.models import AggregatedResult, UsagePage, UsageQuery

__all__ = [
    "PAGE_CEILING",
    "AggregatedResult",
    "UsageClient",
    "UsagePage",
    "UsageQuery",
    "fetch_all_pages",
]
