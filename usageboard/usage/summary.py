"""Dashboard summaries computed from aggregated usage buckets.

Buckets are upstream records shaped like ``{"results": [{...}, ...]}``; every
numeric field inside a result is optional and counts as zero when absent.

Model tiers follow the upstream's free daily token allowances:

- ``nano_mini``: mini/nano models (1,000,000 tokens/day tracked here)
- ``base_pro``:  full-size models (250,000 tokens/day)

A model name that matches neither tier is counted against ``base_pro``, the
more restrictive allowance.  Results without a model name are not counted.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from usageboard.mappings.store import display_name

NANO_MINI = "nano_mini"
BASE_PRO = "base_pro"

TIER_LIMITS: dict[str, int] = {
    NANO_MINI: 1_000_000,
    BASE_PRO: 250_000,
}

UNKNOWN = "unknown"

_BASE_PRO_FAMILIES = ("gpt-5", "gpt-4.1", "gpt-4o", "o1", "o3")


@dataclass
class UsageTotals:
    input_tokens: int = 0
    output_tokens: int = 0
    cached_tokens: int = 0
    requests: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class KeyUsageRow:
    api_key_id: str
    user_name: str
    input_tokens: int
    output_tokens: int
    cached_tokens: int
    requests: int


@dataclass
class TierUsage:
    limit: int
    used: int = 0
    models: dict[str, int] = field(default_factory=dict)

    @property
    def percentage(self) -> float:
        return self.used / self.limit * 100 if self.limit else 0.0


def _results(buckets: Iterable[Mapping[str, Any]]) -> Iterator[Mapping[str, Any]]:
    for bucket in buckets:
        yield from bucket.get("results") or []


def _count(result: Mapping[str, Any], key: str) -> int:
    return int(result.get(key) or 0)


def calculate_totals(buckets: Iterable[Mapping[str, Any]]) -> UsageTotals:
    totals = UsageTotals()
    for result in _results(buckets):
        totals.input_tokens += _count(result, "input_tokens")
        totals.output_tokens += _count(result, "output_tokens")
        totals.cached_tokens += _count(result, "input_cached_tokens")
        totals.requests += _count(result, "num_model_requests")
    return totals


def usage_by_key(
    buckets: Iterable[Mapping[str, Any]],
    mappings: Mapping[str, str],
) -> list[KeyUsageRow]:
    """One row per result, in upstream order, with the mapped display name."""
    rows = []
    for result in _results(buckets):
        api_key_id = result.get("api_key_id") or UNKNOWN
        rows.append(
            KeyUsageRow(
                api_key_id=api_key_id,
                user_name=display_name(mappings, api_key_id),
                input_tokens=_count(result, "input_tokens"),
                output_tokens=_count(result, "output_tokens"),
                cached_tokens=_count(result, "input_cached_tokens"),
                requests=_count(result, "num_model_requests"),
            )
        )
    return rows


def classify_model(model: str | None) -> str | None:
    """Return the tier a model's tokens count against, or None if uncounted."""
    if not model or model == UNKNOWN:
        return None
    if "mini" in model or "nano" in model:
        return NANO_MINI
    if any(family in model for family in _BASE_PRO_FAMILIES):
        return BASE_PRO
    # Unrecognized models use the more restrictive allowance.
    return BASE_PRO


def tier_usage(buckets: Iterable[Mapping[str, Any]]) -> dict[str, TierUsage]:
    tiers = {name: TierUsage(limit=limit) for name, limit in TIER_LIMITS.items()}
    for result in _results(buckets):
        model = result.get("model") or UNKNOWN
        tier = classify_model(model)
        if tier is None:
            continue
        tokens = _count(result, "input_tokens") + _count(result, "output_tokens")
        usage = tiers[tier]
        usage.used += tokens
        usage.models[model] = usage.models.get(model, 0) + tokens
    return tiers
