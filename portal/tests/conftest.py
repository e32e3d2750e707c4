"""Test fixtures shared by unit/integration tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from portal.infra.db.event_log import SqliteEventLog
from portal.telemetry.engine import AggregationEngine
from portal.telemetry.state import AggregationState

_PORTAL_ENV = (
    "APP_NAME",
    "APP_VERSION",
    "APP_ENV",
    "LOG_LEVEL",
    "HOST",
    "PORT",
    "CORS_ALLOW_ORIGINS",
    "PORTAL_API_TOKEN",
    "OPENCLAW_DB_FILE",
    "OPENCLAW_METRICS_FILE",
    "PORTAL_MAX_RECENT_EVENTS",
    "PORTAL_SNAPSHOT_RECENT_LIMIT",
    "PORTAL_RECOVERY_LIMIT",
    "PORTAL_MAX_BODY_BYTES",
    "OPENCLAW_LOG_FILE",
    "PORTAL_URL",
    "OPENCLAW_LOG_POLL_MS",
    "PORTAL_TIMEOUT_SECONDS",
)


class FixedClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _PORTAL_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 10, 19, 10, 50, tzinfo=timezone.utc))


@pytest.fixture
def event_log(tmp_path: Path):
    log = SqliteEventLog.open(tmp_path / "events.db")
    try:
        yield log
    finally:
        log.close()


@pytest.fixture
def engine(event_log: SqliteEventLog, clock: FixedClock) -> AggregationEngine:
    return AggregationEngine(AggregationState(), event_log, clock=clock)
