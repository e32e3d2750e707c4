"""Composition layer: build and hold long-lived service objects for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass

from portal.core.config import Settings
from portal.infra.db.event_log import SqliteEventLog
from portal.telemetry.engine import AggregationEngine
from portal.telemetry.queries import QueryService
from portal.telemetry.state import AggregationState


@dataclass
class AppContainer:
    """Container object attached to FastAPI app state."""

    settings: Settings
    event_log: SqliteEventLog
    state: AggregationState
    engine: AggregationEngine
    queries: QueryService


def build_container(settings: Settings, *, event_log: SqliteEventLog | None = None) -> AppContainer:
    """Construct runtime dependencies in one place."""
    log = event_log or SqliteEventLog.open(settings.db_path)
    state = AggregationState(max_recent_events=settings.max_recent_events)
    engine = AggregationEngine(state, log)
    queries = QueryService(state, log, recent_limit=settings.snapshot_recent_limit)
    return AppContainer(
        settings=settings,
        event_log=log,
        state=state,
        engine=engine,
        queries=queries,
    )
