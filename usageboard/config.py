"""Centralized settings for usageboard via Pydantic BaseSettings.

All configuration is read from environment variables with the USAGEBOARD_
prefix, falling back to the defaults defined here. Set values in a .env file
or export them in the shell before starting the server.

The upstream admin key is NOT a setting: it is looked up at request time
through an :class:`EnvironmentProvider` so that platform bindings (injected
by the hosting runtime) and the process environment can both supply it.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Protocol

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Environment variable names are formed by uppercasing the field name and
    prepending the USAGEBOARD_ prefix.  Example: USAGEBOARD_REDIS_URL
    overrides redis_url.
    """

    # Upstream metering API
    upstream_base_url: str = "https://api.openai.com/v1"
    admin_key_variable: str = "OPENAI_ADMIN_KEY"
    # Takes precedence over the process variable named by admin_key_variable
    admin_key: str = ""

    # Retry policy for the first page (milliseconds)
    first_page_max_retries: int = 3
    retry_initial_delay_ms: float = 1000.0
    retry_max_delay_ms: float = 10000.0
    request_timeout_ms: float = 15000.0

    # Retry budget for continuation pages
    next_page_max_retries: int = 2

    # Hard cap on pages fetched per aggregation
    max_pages: int = 10

    # Mapping store: an empty redis_url selects the in-memory backend
    redis_url: str = ""
    mappings_redis_key: str = "mappings"
    mappings_seed_file: str = "api_key_mappings.json"

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="USAGEBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Module-level singleton, imported throughout the codebase
settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the server and the CLI."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Environment capability
# ---------------------------------------------------------------------------


class EnvironmentProvider(Protocol):
    """Read-only access to deployment variables (secrets, bindings)."""

    name: str

    def get(self, key: str) -> str | None: ...


class ProcessEnvironment:
    """Reads variables from ``os.environ``."""

    name = "process.env"

    def get(self, key: str) -> str | None:
        return os.environ.get(key)


class MappingEnvironment:
    """Serves variables from an explicit mapping (runtime bindings, tests)."""

    def __init__(self, values: Mapping[str, str], name: str = "bindings") -> None:
        self._values = dict(values)
        self.name = name

    def get(self, key: str) -> str | None:
        return self._values.get(key)


class ChainedEnvironment:
    """Asks each provider in turn; the first non-empty value wins."""

    name = "chained"

    def __init__(self, *providers: EnvironmentProvider) -> None:
        self.providers = providers

    def get(self, key: str) -> str | None:
        value, _ = self.lookup(key)
        return value

    def lookup(self, key: str) -> tuple[str | None, str]:
        """Return ``(value, provider_name)``; the name is ``"none"`` on a miss."""
        for provider in self.providers:
            value = provider.get(key)
            if value:
                return value, provider.name
        return None, "none"


def default_environment(config: Settings | None = None) -> ChainedEnvironment:
    """Environment used by the server and the CLI.

    An admin key configured through settings (``USAGEBOARD_ADMIN_KEY`` or the
    ``.env`` file) is served first under the name ``admin_key_variable``; the
    process environment follows.
    """
    config = config or settings
    if config.admin_key:
        bindings = MappingEnvironment({config.admin_key_variable: config.admin_key}, name="settings")
        return ChainedEnvironment(bindings, ProcessEnvironment())
    return ChainedEnvironment(ProcessEnvironment())
