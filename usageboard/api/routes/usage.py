"""Usage report REST endpoint.

Endpoint:
- GET /usage — merged multi-page usage report for a time range

The admin key is resolved per request through the environment provider.
Upstream failures are translated as follows:

- 4xx on the first page          → same status, upstream body in ``details``
- retries exhausted (timeout)    → 504
- retries exhausted (otherwise)  → 502
- undecodable first page         → 502

Failures on continuation pages never reach this layer: the aggregator
returns partial data with ``has_more`` set instead.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from usageboard.api.deps import get_environment, get_http_client, get_settings
from usageboard.config import ChainedEnvironment, Settings
from usageboard.fetch.errors import (
    ExhaustedRetriesError,
    FetchTimeoutError,
    MalformedPageError,
    TerminalClientError,
)
from usageboard.usage.client import UsageClient
from usageboard.usage.models import UsageQuery

logger = logging.getLogger(__name__)

usage_router = APIRouter(prefix="/usage", tags=["usage"])


class UsageResponse(BaseModel):
    """Response body for GET /usage."""

    object: str = "page"
    data: list[dict[str, Any]]
    has_more: bool
    next_page: str | None = None


def _error(status_code: int, error: str, details: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": error, "details": details})


@usage_router.get(
    "",
    response_model=UsageResponse,
    operation_id="get_usage",
    summary="Usage report for a time range",
    description=(
        "Fetches every page of the upstream completions usage report (up to the "
        "page ceiling) and returns the merged buckets. has_more is true when the "
        "report was truncated or a later page failed."
    ),
)
async def get_usage_endpoint(
    start_time: Annotated[int | None, Query(description="Range start, epoch seconds")] = None,
    end_time: Annotated[int | None, Query(description="Range end, epoch seconds")] = None,
    bucket_width: Annotated[Literal["1m", "1h", "1d"], Query(description="Bucket width")] = "1d",
    group_by: Annotated[str, Query(description="Grouping field, or 'none'")] = "api_key_id",
    limit: Annotated[int | None, Query(ge=1, description="Buckets per page")] = None,
    page: Annotated[str | None, Query(description="Cursor to resume from")] = None,
    http_client: httpx.AsyncClient = Depends(get_http_client),
    environment: ChainedEnvironment = Depends(get_environment),
    settings: Settings = Depends(get_settings),
) -> UsageResponse:
    api_key = environment.get(settings.admin_key_variable)
    if not api_key:
        raise HTTPException(
            status_code=500,
            detail={"error": f"{settings.admin_key_variable} not configured"},
        )

    if start_time is None:
        raise HTTPException(status_code=400, detail={"error": "start_time parameter is required"})

    query = UsageQuery(
        start_time=start_time,
        end_time=end_time,
        bucket_width=bucket_width,
        group_by=group_by,
        limit=limit,
    )
    client = UsageClient.from_settings(http_client, api_key, settings)

    try:
        result = await client.fetch_usage(query, start_cursor=page)
    except TerminalClientError as exc:
        logger.error("Upstream rejected usage request: status=%d body=%s", exc.status_code, exc.body)
        raise _error(exc.status_code, "Failed to fetch usage data from upstream", exc.body)
    except ExhaustedRetriesError as exc:
        logger.error("Usage request failed after %d attempt(s): %s", exc.attempts, exc.last_error)
        status_code = 504 if isinstance(exc.last_error, FetchTimeoutError) else 502
        raise _error(status_code, "Upstream usage API unavailable", str(exc.last_error))
    except MalformedPageError as exc:
        logger.error("Upstream returned an undecodable usage page: %s", exc)
        raise _error(502, "Malformed response from upstream", str(exc))

    return UsageResponse(data=result.data, has_more=result.has_more, next_page=result.next_page)
