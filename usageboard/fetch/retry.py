"""Resilient outbound fetch: per-attempt timeout, retry with backoff and jitter.

Every outbound HTTP call in usageboard goes through :func:`fetch_with_retry`
so that timeout, retry and classification rules live in exactly one place.

Attempt schedule for ``max_retries = N``:
    attempt 0 → (wait d1) → attempt 1 → ... → (wait dN) → attempt N → raise

where ``dn = min(initial_delay * 2**(n-1) + jitter, max_delay)`` milliseconds
and ``jitter`` is uniform in ``[0, 1000)``.  No wait follows the last attempt.

Status handling:
- 5xx and 429 are converted into :class:`TransientServerError` and retried.
- Every other status (2xx, 3xx, 4xx) is returned to the caller unchanged.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

from usageboard.fetch.errors import (
    ExhaustedRetriesError,
    FetchTimeoutError,
    NetworkError,
    RetryableError,
    TransientServerError,
)
from usageboard.fetch.policy import JITTER_MS, FetchRequest, RetryPolicy, backoff_delay

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

DEFAULT_POLICY = RetryPolicy()


def is_retryable_status(status_code: int) -> bool:
    """True for statuses that indicate a transient upstream condition."""
    return status_code >= 500 or status_code == 429


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_POLICY,
    *,
    sleep: Sleep = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    """Await ``fn()`` until it succeeds or the retry budget is spent.

    Only :class:`RetryableError` triggers another attempt; any other
    exception propagates immediately.

    Args:
        fn:     Zero-argument coroutine factory; called once per attempt.
        policy: Retry budget, backoff bounds and the optional ``on_retry`` hook.
        sleep:  Awaitable sleep taking seconds (injectable for tests).
        rand:   Source of uniform floats in ``[0, 1)`` for jitter.

    Raises:
        ExhaustedRetriesError: After ``policy.max_retries + 1`` failed attempts.
    """
    last_error: RetryableError | None = None

    for attempt in range(policy.max_retries + 1):
        try:
            return await fn()
        except RetryableError as exc:
            last_error = exc

            if attempt == policy.max_retries:
                break

            delay_ms = backoff_delay(attempt + 1, policy, rand() * JITTER_MS)
            logger.warning(
                "Attempt %d/%d failed (%s); retrying in %.0fms",
                attempt + 1,
                policy.max_retries + 1,
                exc,
                delay_ms,
            )

            # Hook failures are the caller's problem and propagate as-is.
            if policy.on_retry is not None:
                policy.on_retry(attempt + 1, exc)

            await sleep(delay_ms / 1000.0)

    assert last_error is not None  # at least one attempt always runs
    raise ExhaustedRetriesError(policy.max_retries + 1, last_error) from last_error


async def _send(client: httpx.AsyncClient, request: FetchRequest, timeout_ms: float) -> httpx.Response:
    """Issue one attempt, translating transport failures into the fetch taxonomy."""
    kwargs: dict = {"headers": dict(request.headers)}
    if request.params:
        kwargs["params"] = list(request.params)
    if isinstance(request.body, (str, bytes)):
        kwargs["content"] = request.body
    elif request.body is not None:
        kwargs["json"] = request.body

    # The policy owns the deadline, whatever timeout the client was built with.
    timeout = timeout_ms / 1000.0
    try:
        return await asyncio.wait_for(
            client.request(request.method, request.url, timeout=timeout, **kwargs),
            timeout=timeout,
        )
    except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
        raise FetchTimeoutError(timeout_ms) from exc
    except httpx.TransportError as exc:
        raise NetworkError(f"{type(exc).__name__}: {exc}") from exc


async def fetch_with_retry(
    client: httpx.AsyncClient,
    request: FetchRequest,
    policy: RetryPolicy = DEFAULT_POLICY,
    *,
    sleep: Sleep = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> httpx.Response:
    """Send ``request`` with a hard per-attempt timeout, retrying transient failures.

    Returns the first response whose status is not retryable, including 4xx
    responses; inspecting business-level errors is the caller's job.

    Raises:
        ExhaustedRetriesError: All attempts timed out, hit a network error, or
            got a 5xx/429 response.  ``last_error`` holds the final failure.
    """

    async def attempt() -> httpx.Response:
        response = await _send(client, request, policy.timeout)
        if is_retryable_status(response.status_code):
            raise TransientServerError(response.status_code, response.reason_phrase)
        return response

    return await retry_async(attempt, policy, sleep=sleep, rand=rand)
