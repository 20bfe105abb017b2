"""usageboard — organization API usage dashboard service.

Fetches paginated usage reports from the upstream metering API with retry,
backoff and per-attempt timeouts, and maps opaque API-key identifiers to
human-readable names.
"""

__version__ = "0.1.0"
