from __future__ import annotations

from usageboard.config import (
    ChainedEnvironment,
    MappingEnvironment,
    ProcessEnvironment,
    Settings,
    default_environment,
)


def test_settings_read_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("USAGEBOARD_MAX_PAGES", "4")
    monkeypatch.setenv("USAGEBOARD_REDIS_URL", "redis://cache:6379/1")

    settings = Settings(_env_file=None)

    assert settings.max_pages == 4
    assert settings.redis_url == "redis://cache:6379/1"
    assert settings.first_page_max_retries == 3
    assert settings.next_page_max_retries == 2


def test_process_environment(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_ADMIN_KEY", "sk-from-process")
    assert ProcessEnvironment().get("OPENAI_ADMIN_KEY") == "sk-from-process"


def test_chained_environment_prefers_first_non_empty(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_ADMIN_KEY", "sk-process")
    env = ChainedEnvironment(
        MappingEnvironment({"OPENAI_ADMIN_KEY": ""}, name="empty"),
        MappingEnvironment({"OPENAI_ADMIN_KEY": "sk-binding"}, name="bindings"),
        ProcessEnvironment(),
    )

    assert env.lookup("OPENAI_ADMIN_KEY") == ("sk-binding", "bindings")
    assert env.get("OPENAI_ADMIN_KEY") == "sk-binding"


def test_chained_environment_miss(monkeypatch) -> None:
    monkeypatch.delenv("USAGEBOARD_TEST_MISSING", raising=False)
    env = default_environment()
    assert env.lookup("USAGEBOARD_TEST_MISSING") == (None, "none")


def test_default_environment_prefers_configured_admin_key(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_ADMIN_KEY", "sk-process")
    config = Settings(_env_file=None, admin_key="sk-settings")

    env = default_environment(config)

    assert env.lookup("OPENAI_ADMIN_KEY") == ("sk-settings", "settings")


def test_default_environment_falls_back_to_process(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_ADMIN_KEY", "sk-process")
    monkeypatch.delenv("USAGEBOARD_ADMIN_KEY", raising=False)

    env = default_environment(Settings(_env_file=None))

    assert env.lookup("OPENAI_ADMIN_KEY") == ("sk-process", "process.env")


def test_admin_key_read_from_env_file(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_ADMIN_KEY", raising=False)
    monkeypatch.delenv("USAGEBOARD_ADMIN_KEY", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("USAGEBOARD_ADMIN_KEY=sk-dotenv\n", encoding="utf-8")

    env = default_environment(Settings(_env_file=str(env_file)))

    assert env.lookup("OPENAI_ADMIN_KEY") == ("sk-dotenv", "settings")
