from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import json_response, mock_client
from usageboard.api.deps import get_environment, get_http_client, get_mapping_store, get_settings
from usageboard.config import ChainedEnvironment, MappingEnvironment, settings
from usageboard.mappings.store import InMemoryMappingStore, RedisMappingStore
from usageboard.server.main import app

ADMIN_KEY = "sk-admin-0123456789"


class Upstream:
    """Stub usage API keyed by the ``page`` cursor."""

    def __init__(self) -> None:
        self.pages: dict[str | None, tuple[int, object]] = {None: (200, {"data": []})}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, payload = self.pages[request.url.params.get("page")]
        return json_response(status, payload)


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def store() -> InMemoryMappingStore:
    return InMemoryMappingStore({"key_alice": "Alice"})


@pytest.fixture
def env_values() -> dict[str, str]:
    return {"OPENAI_ADMIN_KEY": ADMIN_KEY}


@pytest.fixture
def client(upstream, store, env_values, test_settings):
    http_client = mock_client(upstream)
    environment = ChainedEnvironment(MappingEnvironment(env_values))

    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_http_client] = lambda: http_client
    app.dependency_overrides[get_environment] = lambda: environment
    app.dependency_overrides[get_mapping_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# /api/usage
# ---------------------------------------------------------------------------


def test_usage_merges_pages(client, upstream) -> None:
    upstream.pages = {
        None: (200, {"data": [{"start_time": 1}], "next_page": "p2"}),
        "p2": (200, {"data": [{"start_time": 2}]}),
    }

    response = client.get("/api/usage", params={"start_time": 1700000000})

    assert response.status_code == 200
    assert response.json() == {
        "object": "page",
        "data": [{"start_time": 1}, {"start_time": 2}],
        "has_more": False,
        "next_page": None,
    }

    first = upstream.requests[0]
    assert first.url.path == "/v1/organization/usage/completions"
    assert first.headers["Authorization"] == f"Bearer {ADMIN_KEY}"
    assert first.url.params["limit"] == "31"
    assert first.url.params["group_by"] == "api_key_id"
    assert upstream.requests[1].url.params["page"] == "p2"


def test_usage_group_by_none_omits_parameter(client, upstream) -> None:
    response = client.get(
        "/api/usage",
        params={"start_time": 1700000000, "group_by": "none", "bucket_width": "1m", "end_time": 1700003600},
    )

    assert response.status_code == 200
    params = upstream.requests[0].url.params
    assert "group_by" not in params
    assert params["limit"] == "1440"
    assert params["end_time"] == "1700003600"


def test_usage_reports_truncation(client, upstream) -> None:
    upstream.pages = {None: (200, {"data": [{"n": 1}], "next_page": "p2"}), "p2": (503, {"error": "down"})}

    response = client.get("/api/usage", params={"start_time": 1700000000})

    assert response.status_code == 200
    body = response.json()
    assert body["data"] == [{"n": 1}]
    assert body["has_more"] is True
    assert body["next_page"] == "p2"


def test_usage_requires_start_time(client) -> None:
    response = client.get("/api/usage")

    assert response.status_code == 400
    assert response.json()["error"] == "start_time parameter is required"


@pytest.mark.parametrize("env_values", [{}])
def test_usage_requires_admin_key(client, upstream) -> None:
    response = client.get("/api/usage", params={"start_time": 1700000000})

    assert response.status_code == 500
    assert "OPENAI_ADMIN_KEY" in response.json()["error"]
    assert upstream.requests == []


def test_usage_passes_through_upstream_client_error(client, upstream) -> None:
    upstream.pages = {None: (401, {"error": {"message": "Incorrect API key"}})}

    response = client.get("/api/usage", params={"start_time": 1700000000})

    assert response.status_code == 401
    assert "Incorrect API key" in response.json()["details"]
    assert len(upstream.requests) == 1


def test_usage_returns_bad_gateway_after_retries(client, upstream) -> None:
    upstream.pages = {None: (500, {"error": "boom"})}

    response = client.get("/api/usage", params={"start_time": 1700000000})

    assert response.status_code == 502
    assert len(upstream.requests) == 4


def test_usage_rejects_unknown_bucket_width(client) -> None:
    response = client.get("/api/usage", params={"start_time": 1700000000, "bucket_width": "1w"})
    assert response.status_code == 422


# ---------------------------------------------------------------------------
# /api/mappings
# ---------------------------------------------------------------------------


def test_list_mappings(client) -> None:
    response = client.get("/api/mappings")
    assert response.json() == {"key_alice": "Alice"}


def test_upsert_mapping(client, store) -> None:
    response = client.post("/api/mappings", json={"apiKeyId": "key_bob", "userName": "Bob"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Mapping added: key_bob -> Bob"
    assert body["mappings"] == {"key_alice": "Alice", "key_bob": "Bob"}


@pytest.mark.parametrize(
    ("payload", "error"),
    [
        ({"apiKeyId": "key_bob"}, "apiKeyId and userName are required"),
        ({"userName": "Bob"}, "apiKeyId and userName are required"),
        ({"apiKeyId": "sk-bob", "userName": "Bob"}, "apiKeyId must start with 'key_'"),
    ],
)
def test_upsert_mapping_validation(client, payload, error) -> None:
    response = client.post("/api/mappings", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == error


def test_delete_mapping(client) -> None:
    response = client.request("DELETE", "/api/mappings", json={"apiKeyId": "key_alice"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Mapping removed: key_alice"}
    assert client.get("/api/mappings").json() == {}


def test_delete_missing_mapping(client) -> None:
    response = client.request("DELETE", "/api/mappings", json={"apiKeyId": "key_nobody"})

    assert response.status_code == 404
    assert response.json()["error"] == "Mapping not found"


def test_delete_mapping_requires_id(client) -> None:
    response = client.request("DELETE", "/api/mappings", json={})
    assert response.status_code == 400


def test_migrate_mappings_keeps_existing_names(client, test_settings) -> None:
    with open(test_settings.mappings_seed_file, "w", encoding="utf-8") as f:
        json.dump({"key_alice": "Seed Alice", "key_carol": "Carol"}, f)

    response = client.get("/api/migrate-mappings")

    assert response.status_code == 200
    body = response.json()
    assert body["mappings"] == {"key_alice": "Alice", "key_carol": "Carol"}
    assert body["migrated_count"] == 2
    assert body["total_mappings"] == 2
    assert body["details"] == {"from_seed": 2, "existing_in_store": 1, "after_merge": 2}


def test_migrate_mappings_invalid_seed(client, test_settings) -> None:
    with open(test_settings.mappings_seed_file, "w", encoding="utf-8") as f:
        f.write("not json")

    response = client.get("/api/migrate-mappings")

    assert response.status_code == 500
    assert response.json()["error"] == "Migration failed"


def _corrupt_store(raw: str) -> RedisMappingStore:
    conn = AsyncMock()
    conn.get.return_value = raw
    return RedisMappingStore(conn)


@pytest.mark.parametrize("raw", ["not json", '["key_alice"]'])
def test_list_mappings_reports_unreadable_document(client, raw) -> None:
    app.dependency_overrides[get_mapping_store] = lambda: _corrupt_store(raw)

    response = client.get("/api/mappings")

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to fetch mappings"
    assert "mappings" in response.json()["details"]


def test_upsert_mapping_reports_unreadable_document(client) -> None:
    store = _corrupt_store("{broken")
    app.dependency_overrides[get_mapping_store] = lambda: store

    response = client.post("/api/mappings", json={"apiKeyId": "key_bob", "userName": "Bob"})

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to add mapping"
    store._redis.set.assert_not_awaited()


def test_delete_mapping_reports_unreadable_document(client) -> None:
    app.dependency_overrides[get_mapping_store] = lambda: _corrupt_store("42")

    response = client.request("DELETE", "/api/mappings", json={"apiKeyId": "key_alice"})

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to delete mapping"


# ---------------------------------------------------------------------------
# health / debug
# ---------------------------------------------------------------------------


def test_api_health(client) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["has_admin_key"] is True


def test_debug_masks_admin_key(client) -> None:
    body = client.get("/api/debug").json()

    assert body["api_key"] == {
        "configured": True,
        "source": "bindings",
        "prefix": "sk-admi...",
        "length": len(ADMIN_KEY),
    }
    assert body["mapping_backend"] == "memory"
    assert body["hint"] == "Configuration looks good!"
    assert ADMIN_KEY not in json.dumps(body)


@pytest.mark.parametrize("env_values", [{}])
def test_debug_without_admin_key(client) -> None:
    body = client.get("/api/debug").json()

    assert body["api_key"]["configured"] is False
    assert body["api_key"]["source"] == "none"
    assert body["api_key"]["prefix"] == "missing"
    assert "not configured" in body["hint"]


def test_root_liveness(client) -> None:
    assert client.get("/health").json() == {"status": "ok", "service": "usageboard"}


def test_error_payload_is_top_level_json(client) -> None:
    response = client.post("/api/mappings", json={"apiKeyId": "alice", "userName": "Alice"})

    assert response.status_code == 400
    assert response.json() == {"error": "apiKeyId must start with 'key_'"}


def test_plain_http_errors_keep_detail_shape(client) -> None:
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}


def test_lifespan_client_uses_configured_timeout() -> None:
    with TestClient(app):
        timeout = app.state.http_client.timeout

    assert timeout.read == settings.request_timeout_ms / 1000.0
    assert timeout.connect == settings.request_timeout_ms / 1000.0
