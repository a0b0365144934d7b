"""Settings parsing and the service container wiring."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from studio.core.config import Settings


def test_cors_origins_list() -> None:
    assert Settings(_env_file=None, cors_origins="*").cors_origins_list() == ["*"]
    assert Settings(_env_file=None, cors_origins="").cors_origins_list() == ["*"]
    origins = Settings(_env_file=None, cors_origins="https://a.test, https://b.test,").cors_origins_list()
    assert origins == ["https://a.test", "https://b.test"]


def test_blank_api_key_is_unset() -> None:
    assert Settings(_env_file=None, openai_api_key="   ").openai_api_key is None


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("HEARTBEAT_TIMEOUT_MS", "5000")
    monkeypatch.setenv("SESSIONS_DIR", "/data/sessions")
    settings = Settings(_env_file=None)
    assert settings.heartbeat_timeout_ms == 5000
    assert settings.sessions_dir == "/data/sessions"


def test_heartbeat_timeout_bounds() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, heartbeat_timeout_ms=10)


def test_sqlite_parent_created(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'nested' / 'dir' / 'studio.db'}"
    Settings(_env_file=None, database_url=url)
    assert (tmp_path / "nested" / "dir").is_dir()


def test_container_wires_settings(services, settings) -> None:
    assert services.monitor.default_timeout_ms == settings.heartbeat_timeout_ms
    assert services.audio.sessions_dir.is_dir()
    assert not services.realtime.configured
