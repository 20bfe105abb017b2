"""Retry policy and outbound request value types.

All durations are milliseconds, matching how operators think about
upstream SLAs; conversion to seconds happens only at the asyncio boundary.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

# Upper bound (exclusive) of the random offset added to each backoff delay
JITTER_MS = 1000.0

RetryCallback = Callable[[int, Exception], None]


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to retry, how long to wait, and how long one attempt may take."""

    max_retries: int = 3
    initial_delay: float = 1000.0
    max_delay: float = 10000.0
    timeout: float = 15000.0
    on_retry: RetryCallback | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")


@dataclass(frozen=True)
class FetchRequest:
    """A single outbound HTTP request, reused unchanged for every attempt."""

    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    params: tuple[tuple[str, str], ...] = ()
    body: Any = None


def backoff_delay(attempt: int, policy: RetryPolicy, jitter: float) -> float:
    """Return the wait in milliseconds before retry ``attempt`` (1-indexed).

    ``jitter`` is a random offset in ``[0, JITTER_MS)``; the sum is capped at
    ``policy.max_delay``.
    """
    if attempt < 1:
        raise ValueError("attempt is 1-indexed")
    return min(policy.initial_delay * 2 ** (attempt - 1) + jitter, policy.max_delay)
