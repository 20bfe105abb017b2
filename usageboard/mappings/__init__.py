"""API-key identifier → human-readable name mappings."""

from usageboard.mappings.migrate import MigrationReport, load_seed_mappings, merge_mappings, migrate_seed
from usageboard.mappings.store import (
    InMemoryMappingStore,
    MappingStore,
    RedisMappingStore,
    build_mapping_store,
    display_name,
    is_valid_key_id,
)

__all__ = [
    "InMemoryMappingStore",
    "MappingStore",
    "MigrationReport",
    "RedisMappingStore",
    "build_mapping_store",
    "display_name",
    "is_valid_key_id",
    "load_seed_mappings",
    "merge_mappings",
    "migrate_seed",
]
