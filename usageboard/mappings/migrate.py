"""One-time migration of seed-file mappings into a mapping store.

Entries already present in the store win over the seed file, so rerunning
the migration never clobbers names edited after the first run.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from usageboard.mappings.store import MappingStore, is_valid_key_id

logger = logging.getLogger(__name__)


@dataclass
class MigrationReport:
    from_seed: int
    existing: int
    after_merge: int
    mappings: dict[str, str] = field(default_factory=dict)


def load_seed_mappings(path: str | Path) -> dict[str, str]:
    """Read a JSON object of ``{key_id: name}``; a missing file yields ``{}``.

    Raises:
        ValueError: The file exists but is not a JSON object of strings.
    """
    seed_path = Path(path)
    if not seed_path.is_file():
        logger.info("No mapping seed file at %s", seed_path)
        return {}

    data = json.loads(seed_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise ValueError(f"{seed_path} must contain a JSON object of string values")

    invalid = [key for key in data if not is_valid_key_id(key)]
    if invalid:
        logger.warning("Seed file %s has %d identifier(s) without the key_ prefix", seed_path, len(invalid))
    return data


def merge_mappings(seed: Mapping[str, str], existing: Mapping[str, str]) -> dict[str, str]:
    """Union of both mappings; ``existing`` takes precedence on conflicts."""
    return {**seed, **existing}


async def migrate_seed(store: MappingStore, seed: Mapping[str, str]) -> MigrationReport:
    existing = await store.get_all()
    merged = merge_mappings(seed, existing)
    await store.replace_all(merged)

    logger.info(
        "Mapping migration complete: seed=%d existing=%d total=%d",
        len(seed),
        len(existing),
        len(merged),
    )
    return MigrationReport(
        from_seed=len(seed),
        existing=len(existing),
        after_merge=len(merged),
        mappings=merged,
    )
