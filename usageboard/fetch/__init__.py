"""Shared resilient fetcher used by every outbound call in usageboard."""

from usageboard.fetch.errors import (
    ExhaustedRetriesError,
    FetchError,
    FetchTimeoutError,
    MalformedPageError,
    NetworkError,
    RetryableError,
    TerminalClientError,
    TransientServerError,
)
from usageboard.fetch.policy import FetchRequest, RetryPolicy, backoff_delay
from usageboard.fetch.retry import fetch_with_retry, is_retryable_status, retry_async

__all__ = [
    "ExhaustedRetriesError",
    "FetchError",
    "FetchRequest",
    "FetchTimeoutError",
    "MalformedPageError",
    "NetworkError",
    "RetryPolicy",
    "RetryableError",
    "TerminalClientError",
    "TransientServerError",
    "backoff_delay",
    "fetch_with_retry",
    "is_retryable_status",
    "retry_async",
]
