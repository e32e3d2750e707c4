"""Configuration layer: load runtime settings from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _resolve_path(path_like: str) -> Path:
    candidate = Path(path_like)
    if candidate.is_absolute():
        return candidate
    if candidate.exists():
        return candidate
    project_root = Path(__file__).resolve().parents[2]
    rooted = project_root / candidate
    if rooted.exists() or rooted.parent.exists():
        return rooted
    return candidate


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    """Immutable application settings used across API/telemetry layers."""

    app_name: str = "OpenClaw Metrics Portal"
    app_version: str = "0.1.0"
    env: str = "dev"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 4040
    cors_allow_origins: str = "*"
    api_token: str = ""
    db_path: Path = Path("data/openclaw-metrics.db")
    seed_path: Path = Path("data/sample-metrics.json")
    max_recent_events: int = 500
    snapshot_recent_limit: int = 50
    recovery_limit: int = 5000
    max_body_bytes: int = 1024 * 1024

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_token)

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from process env with deterministic defaults."""
        return cls(
            app_name=os.getenv("APP_NAME", cls.app_name),
            app_version=os.getenv("APP_VERSION", cls.app_version),
            env=os.getenv("APP_ENV", cls.env),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            host=os.getenv("HOST", cls.host),
            port=_env_int("PORT", cls.port),
            cors_allow_origins=os.getenv("CORS_ALLOW_ORIGINS", cls.cors_allow_origins),
            api_token=os.getenv("PORTAL_API_TOKEN", cls.api_token).strip(),
            db_path=_resolve_path(os.getenv("OPENCLAW_DB_FILE", str(cls.db_path))),
            seed_path=_resolve_path(os.getenv("OPENCLAW_METRICS_FILE", str(cls.seed_path))),
            max_recent_events=_env_int("PORTAL_MAX_RECENT_EVENTS", cls.max_recent_events),
            snapshot_recent_limit=_env_int(
                "PORTAL_SNAPSHOT_RECENT_LIMIT", cls.snapshot_recent_limit
            ),
            recovery_limit=_env_int("PORTAL_RECOVERY_LIMIT", cls.recovery_limit),
            max_body_bytes=_env_int("PORTAL_MAX_BODY_BYTES", cls.max_body_bytes),
        )
