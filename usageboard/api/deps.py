"""FastAPI dependencies exposing lifespan-owned resources to routes.

The lifespan in ``usageboard.server.main`` stores the shared HTTP client,
mapping store and environment provider on ``app.state``.  Tests replace these
dependencies through ``app.dependency_overrides``.
"""

from __future__ import annotations

import httpx
from fastapi import Request

from usageboard.config import ChainedEnvironment, Settings
from usageboard.config import settings as default_settings
from usageboard.mappings.store import MappingStore


def get_settings() -> Settings:
    return default_settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_mapping_store(request: Request) -> MappingStore:
    return request.app.state.mapping_store


def get_environment(request: Request) -> ChainedEnvironment:
    return request.app.state.environment
