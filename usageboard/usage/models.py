"""Typed shapes for usage queries, upstream pages and aggregated results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

BucketWidth = Literal["1m", "1h", "1d"]

# Largest page the upstream accepts for each bucket width
DEFAULT_LIMITS: dict[str, int] = {
    "1m": 1440,
    "1h": 168,
    "1d": 31,
}

NO_GROUPING = "none"


class UsageQuery(BaseModel):
    """A time-bounded usage report request."""

    start_time: int = Field(..., description="Inclusive range start, epoch seconds")
    end_time: int | None = Field(default=None, description="Exclusive range end, epoch seconds")
    bucket_width: BucketWidth = "1d"
    group_by: str | None = "api_key_id"
    limit: int | None = Field(default=None, ge=1)

    @property
    def effective_limit(self) -> int:
        """Explicit limit, or the largest page allowed for the bucket width."""
        if self.limit is not None:
            return self.limit
        return DEFAULT_LIMITS[self.bucket_width]

    def to_params(self, cursor: str | None = None) -> tuple[tuple[str, str], ...]:
        """Return the ordered upstream query parameters for one page."""
        params: list[tuple[str, str]] = [
            ("start_time", str(self.start_time)),
            ("limit", str(self.effective_limit)),
            ("bucket_width", self.bucket_width),
        ]
        if self.group_by and self.group_by != NO_GROUPING:
            params.append(("group_by", self.group_by))
        if self.end_time is not None:
            params.append(("end_time", str(self.end_time)))
        if cursor:
            params.append(("page", cursor))
        return tuple(params)


class UsagePage(BaseModel):
    """One page of the upstream response.

    Missing or null ``data`` decodes as an empty list and an empty
    ``next_page`` as no cursor, so sparse upstream bodies never fail decoding.
    """

    data: list[dict[str, Any]] = Field(default_factory=list)
    next_page: str | None = None

    model_config = {"extra": "ignore"}

    @field_validator("data", mode="before")
    @classmethod
    def _null_data_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("next_page", mode="before")
    @classmethod
    def _empty_cursor_is_none(cls, value: Any) -> Any:
        return value or None


@dataclass
class AggregatedResult:
    """All fetched records in page-arrival order plus truncation metadata."""

    data: list[dict[str, Any]] = field(default_factory=list)
    has_more: bool = False
    next_page: str | None = None
    pages_fetched: int = 0
