"""Data layer: append-only SQLite log of canonical events plus history/replay queries."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from threading import Lock

from portal.telemetry.normalizer import UNKNOWN_MODEL, CanonicalEvent, utc_now

_SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    ts TEXT NOT NULL,
    type TEXT,
    agent_id TEXT,
    model TEXT,
    host TEXT,
    status TEXT,
    job_id TEXT,
    job_status TEXT,
    session_id TEXT,
    session_status TEXT,
    input_tokens INTEGER NOT NULL DEFAULT 0,
    output_tokens INTEGER NOT NULL DEFAULT 0,
    cached_tokens INTEGER NOT NULL DEFAULT 0,
    payload_json TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
CREATE INDEX IF NOT EXISTS idx_events_agent ON events(agent_id);
CREATE INDEX IF NOT EXISTS idx_events_model ON events(model);
"""

_INSERT = """
INSERT INTO events (
    ts, type, agent_id, model, host, status,
    job_id, job_status, session_id, session_status,
    input_tokens, output_tokens, cached_tokens, payload_json
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

_HISTORY = """
SELECT
    strftime('%Y-%m-%dT%H:00:00Z', ts) AS hour,
    COALESCE(model, ?) AS model_key,
    SUM(input_tokens) AS input_tokens,
    SUM(output_tokens) AS output_tokens,
    SUM(cached_tokens) AS cached_tokens
FROM events
WHERE datetime(ts) >= datetime(?)
GROUP BY hour, model_key
ORDER BY hour DESC, (SUM(input_tokens) + SUM(output_tokens)) DESC, model_key ASC
"""

_LOAD_RECENT = """
SELECT payload_json
FROM events
ORDER BY datetime(ts) DESC, id DESC
LIMIT ?
"""


class EventLogError(RuntimeError):
    """Raised when the durable log cannot be written or read."""


@dataclass(frozen=True)
class HistoryRow:
    hour: str
    model: str
    input_tokens: int
    output_tokens: int
    cached_tokens: int


class SqliteEventLog:
    """Durable event log backed by one SQLite file.

    A single connection is shared across request threads; every statement runs
    under `_lock` so appends stay serialized.
    """

    def __init__(self, conn: sqlite3.Connection, path: Path | None = None) -> None:
        self._conn = conn
        self._path = path
        self._lock = Lock()

    @classmethod
    def open(cls, path: Path) -> "SqliteEventLog":
        """Open (or create) the log file, creating parent directories and schema."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(path), check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as exc:
            raise EventLogError(f"cannot open event log at {path}: {exc}") from exc
        return cls(conn, path)

    @classmethod
    def in_memory(cls) -> "SqliteEventLog":
        conn = sqlite3.connect(":memory:", check_same_thread=False)
        conn.executescript(_SCHEMA)
        return cls(conn)

    @property
    def path(self) -> Path | None:
        return self._path

    def append(self, event: CanonicalEvent) -> int:
        """Append one event; return its row id."""
        params = (
            event.ts,
            event.type,
            event.agent_id,
            event.model,
            event.host,
            event.status,
            event.job_id,
            event.job_status,
            event.session_id,
            event.session_status,
            event.usage.input_tokens,
            event.usage.output_tokens,
            event.usage.cached_tokens,
            json.dumps(event.to_dict(), ensure_ascii=False),
        )
        with self._lock:
            try:
                with self._conn:
                    cursor = self._conn.execute(_INSERT, params)
            except (sqlite3.Error, OverflowError) as exc:
                raise EventLogError(f"failed to append event: {exc}") from exc
        return int(cursor.lastrowid)

    def history(self, hours_back: int, *, now: datetime | None = None) -> list[HistoryRow]:
        """Hourly per-model usage sums for events within `hours_back` hours of `now`."""
        cutoff = (now or utc_now()) - timedelta(hours=hours_back)
        cutoff_text = cutoff.strftime("%Y-%m-%d %H:%M:%S")
        with self._lock:
            try:
                rows = self._conn.execute(_HISTORY, (UNKNOWN_MODEL, cutoff_text)).fetchall()
            except sqlite3.Error as exc:
                raise EventLogError(f"history query failed: {exc}") from exc
        return [
            HistoryRow(
                hour=row[0],
                model=row[1],
                input_tokens=int(row[2] or 0),
                output_tokens=int(row[3] or 0),
                cached_tokens=int(row[4] or 0),
            )
            for row in rows
            if row[0] is not None
        ]

    def load_recent(self, limit: int) -> list[str]:
        """Serialized payloads of the newest `limit` events, newest first."""
        with self._lock:
            try:
                rows = self._conn.execute(_LOAD_RECENT, (max(0, limit),)).fetchall()
            except sqlite3.Error as exc:
                raise EventLogError(f"failed to load recent events: {exc}") from exc
        return [row[0] for row in rows]

    def count(self) -> int:
        with self._lock:
            try:
                row = self._conn.execute("SELECT COUNT(*) FROM events").fetchone()
            except sqlite3.Error as exc:
                raise EventLogError(f"count query failed: {exc}") from exc
        return int(row[0])

    def close(self) -> None:
        with self._lock:
            self._conn.close()
