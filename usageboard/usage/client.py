"""Client for the upstream organization usage API."""

from __future__ import annotations

import logging

import httpx

from usageboard.config import Settings
from usageboard.fetch.policy import FetchRequest, RetryPolicy
from usageboard.usage.aggregator import PAGE_CEILING, fetch_all_pages
from usageboard.usage.models import AggregatedResult, UsageQuery

logger = logging.getLogger(__name__)

COMPLETIONS_USAGE_PATH = "/organization/usage/completions"


class UsageClient:
    """Builds authenticated usage requests and aggregates their pages."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        *,
        base_url: str = "https://api.openai.com/v1",
        first_page_policy: RetryPolicy | None = None,
        next_page_policy: RetryPolicy | None = None,
        max_pages: int = PAGE_CEILING,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.first_page_policy = first_page_policy or RetryPolicy(max_retries=3)
        self.next_page_policy = next_page_policy or RetryPolicy(max_retries=2)
        self.max_pages = max_pages

    @classmethod
    def from_settings(cls, http_client: httpx.AsyncClient, api_key: str, settings: Settings) -> UsageClient:
        shared = {
            "initial_delay": settings.retry_initial_delay_ms,
            "max_delay": settings.retry_max_delay_ms,
            "timeout": settings.request_timeout_ms,
        }
        return cls(
            http_client,
            api_key,
            base_url=settings.upstream_base_url,
            first_page_policy=RetryPolicy(max_retries=settings.first_page_max_retries, **shared),
            next_page_policy=RetryPolicy(max_retries=settings.next_page_max_retries, **shared),
            max_pages=settings.max_pages,
        )

    def build_request(self, query: UsageQuery, cursor: str | None = None) -> FetchRequest:
        return FetchRequest(
            url=f"{self.base_url}{COMPLETIONS_USAGE_PATH}",
            method="GET",
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            params=query.to_params(cursor),
        )

    async def fetch_usage(self, query: UsageQuery, start_cursor: str | None = None) -> AggregatedResult:
        """Fetch every page of the usage report for ``query`` (up to the ceiling)."""
        result = await fetch_all_pages(
            self._http,
            lambda cursor: self.build_request(query, cursor),
            start_cursor,
            max_pages=self.max_pages,
            first_page_policy=self.first_page_policy,
            next_page_policy=self.next_page_policy,
        )
        logger.info(
            "Usage fetched: start_time=%s bucket_width=%s group_by=%s pages=%d records=%d has_more=%s",
            query.start_time,
            query.bucket_width,
            query.group_by,
            result.pages_fetched,
            len(result.data),
            result.has_more,
        )
        return result
