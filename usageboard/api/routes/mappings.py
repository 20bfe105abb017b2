"""API-key mapping REST endpoints.

Endpoints:
- GET    /mappings          — every ``key_id → name`` mapping
- POST   /mappings          — add or update one mapping
- DELETE /mappings          — remove one mapping
- GET    /migrate-mappings  — merge the seed file into the store

Request bodies use the camelCase field names the dashboard front-end sends
(``apiKeyId``, ``userName``).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from usageboard.api.deps import get_mapping_store, get_settings
from usageboard.config import Settings
from usageboard.mappings.migrate import load_seed_mappings, migrate_seed
from usageboard.mappings.store import MappingStore, is_valid_key_id

logger = logging.getLogger(__name__)

mappings_router = APIRouter(tags=["mappings"])


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class MappingUpsertRequest(BaseModel):
    """Request body for POST /mappings."""

    api_key_id: str | None = Field(default=None, alias="apiKeyId")
    user_name: str | None = Field(default=None, alias="userName")

    model_config = {"populate_by_name": True}


class MappingDeleteRequest(BaseModel):
    """Request body for DELETE /mappings."""

    api_key_id: str | None = Field(default=None, alias="apiKeyId")

    model_config = {"populate_by_name": True}


class MappingUpsertResponse(BaseModel):
    success: bool
    message: str
    mappings: dict[str, str]


class MappingDeleteResponse(BaseModel):
    success: bool
    message: str


class MigrationDetails(BaseModel):
    from_seed: int
    existing_in_store: int
    after_merge: int


class MigrationResponse(BaseModel):
    """Response body for GET /migrate-mappings."""

    success: bool
    message: str
    migrated_count: int
    total_mappings: int
    mappings: dict[str, str]
    details: MigrationDetails


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


def _store_error(message: str, exc: Exception) -> HTTPException:
    return HTTPException(status_code=500, detail={"error": message, "details": str(exc)})


@mappings_router.get(
    "/mappings",
    response_model=dict[str, str],
    operation_id="list_mappings",
    summary="All API key mappings",
)
async def list_mappings_endpoint(
    store: MappingStore = Depends(get_mapping_store),
) -> dict[str, str]:
    try:
        return await store.get_all()
    except ValueError as exc:
        logger.error("Reading mappings failed: %s", exc)
        raise _store_error("Failed to fetch mappings", exc)


@mappings_router.post(
    "/mappings",
    response_model=MappingUpsertResponse,
    operation_id="upsert_mapping",
    summary="Add or update an API key mapping",
)
async def upsert_mapping_endpoint(
    body: MappingUpsertRequest,
    store: MappingStore = Depends(get_mapping_store),
) -> MappingUpsertResponse:
    if not body.api_key_id or not body.user_name:
        raise HTTPException(status_code=400, detail={"error": "apiKeyId and userName are required"})

    if not is_valid_key_id(body.api_key_id):
        raise HTTPException(status_code=400, detail={"error": "apiKeyId must start with 'key_'"})

    try:
        mappings = await store.upsert(body.api_key_id, body.user_name)
    except ValueError as exc:
        logger.error("Upserting mapping %s failed: %s", body.api_key_id, exc)
        raise _store_error("Failed to add mapping", exc)
    logger.info("Mapping upserted: %s -> %s", body.api_key_id, body.user_name)

    return MappingUpsertResponse(
        success=True,
        message=f"Mapping added: {body.api_key_id} -> {body.user_name}",
        mappings=mappings,
    )


@mappings_router.delete(
    "/mappings",
    response_model=MappingDeleteResponse,
    operation_id="delete_mapping",
    summary="Remove an API key mapping",
)
async def delete_mapping_endpoint(
    body: MappingDeleteRequest,
    store: MappingStore = Depends(get_mapping_store),
) -> MappingDeleteResponse:
    if not body.api_key_id:
        raise HTTPException(status_code=400, detail={"error": "apiKeyId is required"})

    try:
        removed = await store.delete(body.api_key_id)
    except ValueError as exc:
        logger.error("Removing mapping %s failed: %s", body.api_key_id, exc)
        raise _store_error("Failed to delete mapping", exc)

    if not removed:
        raise HTTPException(status_code=404, detail={"error": "Mapping not found"})

    logger.info("Mapping removed: %s", body.api_key_id)
    return MappingDeleteResponse(success=True, message=f"Mapping removed: {body.api_key_id}")


@mappings_router.get(
    "/migrate-mappings",
    response_model=MigrationResponse,
    operation_id="migrate_mappings",
    summary="Merge the seed file into the mapping store",
    description=(
        "Copies mappings from the seed JSON file into the store. Entries already "
        "in the store are kept, so the call is safe to repeat."
    ),
)
async def migrate_mappings_endpoint(
    store: MappingStore = Depends(get_mapping_store),
    settings: Settings = Depends(get_settings),
) -> MigrationResponse:
    try:
        seed = load_seed_mappings(settings.mappings_seed_file)
        report = await migrate_seed(store, seed)
    except ValueError as exc:
        logger.error("Mapping migration failed: %s", exc)
        raise _store_error("Migration failed", exc)

    return MigrationResponse(
        success=True,
        message="Migration completed successfully",
        migrated_count=report.from_seed,
        total_mappings=report.after_merge,
        mappings=report.mappings,
        details=MigrationDetails(
            from_seed=report.from_seed,
            existing_in_store=report.existing,
            after_merge=report.after_merge,
        ),
    )
