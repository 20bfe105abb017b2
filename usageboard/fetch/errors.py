"""Error taxonomy for outbound fetches.

Retryable kinds (timeout, transient server status, connection failure) share
the :class:`RetryableError` base so the retry loop can catch them in one
clause.  Anything outside this taxonomy is a programming or configuration
error and is never retried.
"""

from __future__ import annotations


class FetchError(Exception):
    """Base class for every failure surfaced by the fetch layer."""


class RetryableError(FetchError):
    """A failure that may succeed if the same request is attempted again."""


class FetchTimeoutError(RetryableError):
    """An attempt did not produce a response within the configured timeout."""

    def __init__(self, timeout_ms: float) -> None:
        super().__init__(f"Request timeout after {timeout_ms:g}ms")
        self.timeout_ms = timeout_ms


class TransientServerError(RetryableError):
    """Upstream answered 5xx or 429."""

    def __init__(self, status_code: int, reason: str = "") -> None:
        message = f"HTTP {status_code}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.status_code = status_code


class NetworkError(RetryableError):
    """Connection-level failure (DNS, refused connection, reset, protocol)."""


class TerminalClientError(FetchError):
    """Upstream rejected the request with a 4xx other than 429.

    The fetcher hands such responses back unchanged; this error is raised by
    callers that need the page to succeed.
    """

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class MalformedPageError(FetchError):
    """The upstream body could not be decoded into a usage page."""


class ExhaustedRetriesError(FetchError):
    """Every allowed attempt failed; wraps the last underlying error."""

    def __init__(self, attempts: int, last_error: RetryableError) -> None:
        super().__init__(f"Request failed after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error
