"""Cursor-paginated aggregation over the resilient fetcher.

Pages are fetched strictly one after another because each request carries
the cursor returned by the previous response.  Records are appended in
arrival order; upstream ordering is authoritative and never re-sorted.

Failure asymmetry:
- Page 1 failing means there is no data at all, so the error propagates.
- A later page failing still leaves a useful partial report, so aggregation
  stops there and returns what it has, with ``has_more`` reflecting the last
  cursor seen.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable

import httpx

from usageboard.fetch.errors import FetchError, MalformedPageError, TerminalClientError
from usageboard.fetch.policy import FetchRequest, RetryPolicy
from usageboard.fetch.retry import Sleep, fetch_with_retry
from usageboard.usage.models import AggregatedResult, UsagePage

logger = logging.getLogger(__name__)

PAGE_CEILING = 10

FIRST_PAGE_POLICY = RetryPolicy(max_retries=3)
NEXT_PAGE_POLICY = RetryPolicy(max_retries=2)

RequestBuilder = Callable[[str | None], FetchRequest]


def decode_page(response: httpx.Response) -> UsagePage:
    """Validate a usage page response.

    Raises:
        TerminalClientError: The upstream answered with a 4xx status.
        MalformedPageError:  The body is not JSON or not a page object.
    """
    if response.status_code >= 400:
        raise TerminalClientError(response.status_code, response.text)
    try:
        return UsagePage.model_validate(response.json())
    except ValueError as exc:
        raise MalformedPageError(f"Undecodable usage page: {exc}") from exc


async def fetch_all_pages(
    client: httpx.AsyncClient,
    build_request: RequestBuilder,
    start_cursor: str | None = None,
    *,
    max_pages: int = PAGE_CEILING,
    first_page_policy: RetryPolicy = FIRST_PAGE_POLICY,
    next_page_policy: RetryPolicy = NEXT_PAGE_POLICY,
    sleep: Sleep = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> AggregatedResult:
    """Fetch up to ``max_pages`` pages and merge their records.

    Args:
        client:            Shared async HTTP client.
        build_request:     Maps a cursor (``None`` for an uncursored first
                           page) to the request for that page.
        start_cursor:      Optional cursor to resume from.
        max_pages:         Page ceiling for this call.
        first_page_policy: Retry policy for the first page.
        next_page_policy:  Retry policy for continuation pages.

    Returns:
        The merged records; ``has_more``/``next_page`` are set when a cursor
        remained at the point aggregation stopped.

    Raises:
        FetchError: Only for the first page (exhausted retries, 4xx, or a
            malformed body).
    """
    if max_pages < 1:
        raise ValueError("max_pages must be at least 1")

    response = await fetch_with_retry(
        client, build_request(start_cursor), first_page_policy, sleep=sleep, rand=rand
    )
    page = decode_page(response)

    result = AggregatedResult(data=list(page.data), pages_fetched=1)
    cursor = page.next_page

    while cursor and result.pages_fetched < max_pages:
        try:
            response = await fetch_with_retry(
                client, build_request(cursor), next_page_policy, sleep=sleep, rand=rand
            )
            page = decode_page(response)
        except FetchError as exc:
            logger.warning(
                "Continuation page %d failed, returning partial result: %s",
                result.pages_fetched + 1,
                exc,
            )
            break

        result.data.extend(page.data)
        result.pages_fetched += 1
        cursor = page.next_page

    if cursor and result.pages_fetched >= max_pages:
        logger.info("Page ceiling (%d) reached with a cursor remaining", max_pages)

    result.has_more = bool(cursor)
    result.next_page = cursor
    return result
