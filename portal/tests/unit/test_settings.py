"""Unit tests for environment-driven settings."""

from __future__ import annotations

from pathlib import Path

from portal.core.config import Settings
from portal.infra.observability.logger import resolve_level


def test_settings_defaults() -> None:
    settings = Settings.from_env()

    assert settings.port == 4040
    assert settings.api_token == ""
    assert settings.auth_enabled is False
    assert settings.max_recent_events == 500
    assert settings.snapshot_recent_limit == 50
    assert settings.recovery_limit == 5000
    assert settings.max_body_bytes == 1024 * 1024
    assert settings.db_path.name == "openclaw-metrics.db"


def test_settings_reads_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PORT", "5050")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("PORTAL_API_TOKEN", "s3cret")
    monkeypatch.setenv("OPENCLAW_DB_FILE", str(tmp_path / "metrics.db"))
    monkeypatch.setenv("OPENCLAW_METRICS_FILE", str(tmp_path / "seed.json"))
    monkeypatch.setenv("PORTAL_MAX_RECENT_EVENTS", "100")
    monkeypatch.setenv("PORTAL_SNAPSHOT_RECENT_LIMIT", "10")
    monkeypatch.setenv("PORTAL_RECOVERY_LIMIT", "200")
    monkeypatch.setenv("PORTAL_MAX_BODY_BYTES", "2048")

    settings = Settings.from_env()

    assert settings.port == 5050
    assert settings.log_level == "debug"
    assert settings.api_token == "s3cret"
    assert settings.auth_enabled is True
    assert settings.db_path == tmp_path / "metrics.db"
    assert settings.seed_path == tmp_path / "seed.json"
    assert settings.max_recent_events == 100
    assert settings.snapshot_recent_limit == 10
    assert settings.recovery_limit == 200
    assert settings.max_body_bytes == 2048


def test_unknown_log_level_falls_back_to_info() -> None:
    assert resolve_level("debug") == "DEBUG"
    assert resolve_level("warn") == "WARNING"
    assert resolve_level("verbose") == "INFO"
    assert resolve_level(None) == "INFO"
