"""usageboard HTTP server entry point.

Lifespan creates the shared outbound HTTP client, the mapping store and the
environment provider once, and releases them on shutdown.

Entry point:
    uvicorn usageboard.server.main:app --host 0.0.0.0 --port 8000

Or run directly:
    python -m usageboard.server.main
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from usageboard import __version__
from usageboard.api.router import api_router
from usageboard.config import configure_logging, default_environment, settings
from usageboard.mappings.store import build_mapping_store

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: shared resources
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup init and shutdown cleanup.

    Startup order:
    1. Configure logging
    2. Environment provider (admin key lookup)
    3. Shared httpx.AsyncClient: one connection pool for every upstream call
    4. Mapping store: Redis when configured, otherwise seeded in-memory

    Shutdown closes the HTTP client and the mapping store.
    """
    configure_logging()
    logger.info("usageboard server starting up...")

    app.state.environment = default_environment(settings)
    app.state.http_client = httpx.AsyncClient(timeout=settings.request_timeout_ms / 1000.0)
    app.state.mapping_store = build_mapping_store(
        settings.redis_url,
        settings.mappings_redis_key,
        settings.mappings_seed_file,
    )
    logger.info("Mapping store ready (backend=%s).", app.state.mapping_store.backend)

    try:
        yield
    finally:
        logger.info("usageboard server shutting down...")
        await app.state.http_client.aclose()
        await app.state.mapping_store.close()


def custom_generate_unique_id(route: APIRoute) -> str:
    """Generate deterministic, SDK-friendly operation IDs for REST routes."""
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


app = FastAPI(
    title="usageboard",
    description="Organization API usage dashboard — usage reports and API key mappings",
    version=__version__,
    lifespan=lifespan,
    generate_unique_id_function=custom_generate_unique_id,
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Serve dict details as the response body so clients read ``error`` at the top level.

    String details keep FastAPI's default ``{"detail": ...}`` shape.
    """
    payload = exc.detail if isinstance(exc.detail, dict) else {"detail": exc.detail}
    return JSONResponse(payload, status_code=exc.status_code, headers=exc.headers)


@app.get("/health")
async def health() -> JSONResponse:
    """Liveness probe that touches no upstream or store."""
    return JSONResponse({"status": "ok", "service": "usageboard"})


# Mounted AFTER /health so it does not shadow the health endpoint.
app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn  # noqa: PLC0415

    uvicorn.run(app, host="0.0.0.0", port=8000)
