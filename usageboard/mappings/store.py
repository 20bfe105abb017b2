"""API-key → display-name mapping store.

Backend-agnostic ABC with two implementations:

- :class:`InMemoryMappingStore` — process-local dict, optionally seeded from
  the JSON seed file; used for local development and tests.
- :class:`RedisMappingStore` — the whole mapping is one JSON document stored
  under a single Redis key, read-modify-written on each change.

Key identifiers must look like ``key_<suffix>``.  The mapping is flat: keys
are unique and carry no other invariant.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

KEY_ID_PATTERN = re.compile(r"^key_.+$")

UNKNOWN_USER = "Unknown User"


def is_valid_key_id(key_id: str) -> bool:
    return bool(KEY_ID_PATTERN.match(key_id))


def display_name(mappings: Mapping[str, str], key_id: str | None) -> str:
    """Return the mapped name, falling back to the raw identifier."""
    return mappings.get(key_id or "") or key_id or UNKNOWN_USER


class MappingStore(ABC):
    """Flat string → string store keyed by API-key identifier.

    All methods are async so backends can use network clients.
    """

    backend: str = "abstract"

    @abstractmethod
    async def get_all(self) -> dict[str, str]:
        """Return a copy of every mapping.

        Raises:
            ValueError: The persisted document is not a JSON object.
        """

    @abstractmethod
    async def upsert(self, key_id: str, name: str) -> dict[str, str]:
        """Add or replace one mapping and return the full mapping afterwards."""

    @abstractmethod
    async def delete(self, key_id: str) -> bool:
        """Remove one mapping; False when it did not exist."""

    @abstractmethod
    async def replace_all(self, mappings: Mapping[str, str]) -> None:
        """Overwrite the whole mapping."""

    async def close(self) -> None:
        """Release backend resources; no-op by default."""


class InMemoryMappingStore(MappingStore):
    backend = "memory"

    def __init__(self, seed: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(seed or {})

    async def get_all(self) -> dict[str, str]:
        return dict(self._data)

    async def upsert(self, key_id: str, name: str) -> dict[str, str]:
        self._data[key_id] = name
        return dict(self._data)

    async def delete(self, key_id: str) -> bool:
        return self._data.pop(key_id, None) is not None

    async def replace_all(self, mappings: Mapping[str, str]) -> None:
        self._data = dict(mappings)


class RedisMappingStore(MappingStore):
    """Mappings persisted as one JSON object under ``key`` in Redis."""

    backend = "redis"

    def __init__(self, redis_conn: aioredis.Redis, key: str = "mappings") -> None:
        self._redis = redis_conn
        self.key = key

    @classmethod
    def from_url(cls, redis_url: str, key: str = "mappings") -> RedisMappingStore:
        redis_connection = aioredis.from_url(
            redis_url, encoding="utf-8", decode_responses=True
        )
        return cls(redis_connection, key)

    async def get_all(self) -> dict[str, str]:
        raw = await self._redis.get(self.key)
        if not raw:
            return {}
        try:
            mappings = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Redis key {self.key!r} does not hold valid JSON: {exc}") from exc
        if not isinstance(mappings, dict):
            raise ValueError(f"Redis key {self.key!r} must hold a JSON object, got {type(mappings).__name__}")
        return mappings

    async def _put(self, mappings: Mapping[str, str]) -> None:
        await self._redis.set(self.key, json.dumps(dict(mappings)))

    async def upsert(self, key_id: str, name: str) -> dict[str, str]:
        mappings = await self.get_all()
        mappings[key_id] = name
        await self._put(mappings)
        return mappings

    async def delete(self, key_id: str) -> bool:
        mappings = await self.get_all()
        if key_id not in mappings:
            return False
        del mappings[key_id]
        await self._put(mappings)
        return True

    async def replace_all(self, mappings: Mapping[str, str]) -> None:
        await self._put(mappings)

    async def close(self) -> None:
        await self._redis.aclose()


def build_mapping_store(redis_url: str, redis_key: str, seed_file: str) -> MappingStore:
    """Select the backend: Redis when a URL is configured, otherwise memory.

    The in-memory backend is seeded from ``seed_file`` so local development
    shows the same names as production.
    """
    if redis_url:
        logger.info("Using Redis mapping store (key=%s)", redis_key)
        return RedisMappingStore.from_url(redis_url, redis_key)

    # Lazy import to avoid a cycle: migrate depends on this module.
    from usageboard.mappings.migrate import load_seed_mappings  # noqa: PLC0415

    seed = load_seed_mappings(seed_file)
    logger.info("Using in-memory mapping store seeded with %d mapping(s)", len(seed))
    return InMemoryMappingStore(seed)
