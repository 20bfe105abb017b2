from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from usageboard.config import Settings

UPSTREAM = "https://upstream.test/v1"


class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


def json_response(status_code: int, payload: object) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload), headers={"Content-Type": "application/json"})


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        upstream_base_url=UPSTREAM,
        retry_initial_delay_ms=1,
        retry_max_delay_ms=1,
        request_timeout_ms=2000,
        redis_url="",
        mappings_seed_file=str(tmp_path / "seed.json"),
    )
