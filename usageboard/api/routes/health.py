"""Health and configuration diagnostics endpoints.

Endpoints:
- GET /health — liveness plus whether the admin key is configured
- GET /debug  — where the admin key comes from (masked) and which mapping
                backend is active

Neither endpoint ever returns more than the first 7 characters of the key.
"""

from __future__ import annotations

import datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from usageboard.api.deps import get_environment, get_mapping_store, get_settings
from usageboard.config import ChainedEnvironment, Settings
from usageboard.mappings.store import MappingStore

health_router = APIRouter(tags=["health"])

_KEY_PREFIX_CHARS = 7


class HealthResponse(BaseModel):
    status: str
    host: str
    has_admin_key: bool


class ApiKeyDiagnostics(BaseModel):
    configured: bool
    source: str
    prefix: str
    length: int


class DebugResponse(BaseModel):
    timestamp: str
    upstream_base_url: str
    api_key: ApiKeyDiagnostics
    mapping_backend: str
    hint: str


@health_router.get("/health", response_model=HealthResponse, operation_id="health")
async def health_endpoint(
    request: Request,
    environment: ChainedEnvironment = Depends(get_environment),
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    """Simple health check endpoint for load balancers and readiness probes."""
    return HealthResponse(
        status="healthy",
        host=request.url.netloc,
        has_admin_key=bool(environment.get(settings.admin_key_variable)),
    )


@health_router.get("/debug", response_model=DebugResponse, operation_id="debug")
async def debug_endpoint(
    environment: ChainedEnvironment = Depends(get_environment),
    store: MappingStore = Depends(get_mapping_store),
    settings: Settings = Depends(get_settings),
) -> DebugResponse:
    api_key, source = environment.lookup(settings.admin_key_variable)

    if api_key:
        hint = "Configuration looks good!"
    else:
        hint = (
            f"{settings.admin_key_variable} is not configured. Add it to the deployment "
            "environment variables and restart the service."
        )

    return DebugResponse(
        timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
        upstream_base_url=settings.upstream_base_url,
        api_key=ApiKeyDiagnostics(
            configured=bool(api_key),
            source=source,
            prefix=f"{api_key[:_KEY_PREFIX_CHARS]}..." if api_key else "missing",
            length=len(api_key or ""),
        ),
        mapping_backend=store.backend,
        hint=hint,
    )
