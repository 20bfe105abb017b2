"""Top-level FastAPI APIRouter for the usageboard REST API.

Mount this router on the FastAPI app to expose all /api/ endpoints.

Prefix:  /api
Tags:    ["rest-api"]

Sub-routers included:
- usage_router     — GET /api/usage
- mappings_router  — GET|POST|DELETE /api/mappings, GET /api/migrate-mappings
- health_router    — GET /api/health, GET /api/debug
"""

from __future__ import annotations

from fastapi import APIRouter

from usageboard.api.routes.health import health_router
from usageboard.api.routes.mappings import mappings_router
from usageboard.api.routes.usage import usage_router

api_router = APIRouter(prefix="/api", tags=["rest-api"])

api_router.include_router(usage_router)
api_router.include_router(mappings_router)
api_router.include_router(health_router)
