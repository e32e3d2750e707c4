"""Aggregation engine: the single writer of derived state and the durable event log."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any

from portal.infra.db.event_log import SqliteEventLog
from portal.infra.observability.logger import get_logger
from portal.telemetry.normalizer import CanonicalEvent, format_ts, normalize, utc_now
from portal.telemetry.state import AggregationState

logger = get_logger(__name__)


class AggregationEngine:
    """Normalize -> upsert -> remember -> stamp -> persist, atomically per event."""

    def __init__(
        self,
        state: AggregationState,
        event_log: SqliteEventLog,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._state = state
        self._event_log = event_log
        self._clock = clock

    @property
    def state(self) -> AggregationState:
        return self._state

    def ingest(self, raw: Mapping[str, Any], *, persist: bool = True) -> CanonicalEvent:
        """Fold one raw event into derived state and, unless replaying, append it to the log.

        Raises `EventLogError` when the append fails. The in-memory projection
        has already advanced at that point; the log remains the source of truth
        on the next restart.
        """
        with self._state.lock:
            now = self._clock()
            event = normalize(raw, now=now)
            self._state.apply(event)
            self._state.remember(event)
            self._state.last_updated = format_ts(now)
            if persist:
                self._event_log.append(event)
        return event

    def ingest_batch(self, items: Iterable[Any]) -> int:
        """Ingest each mapping in order; skip anything else. Returns the ingested count."""
        ingested = 0
        for item in items:
            if not isinstance(item, Mapping):
                continue
            self.ingest(item)
            ingested += 1
        logger.debug("ingest.batch ingested=%s", ingested)
        return ingested
