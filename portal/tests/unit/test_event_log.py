"""Unit tests for the SQLite event log: history rollups and recent-event loading."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from portal.infra.db.event_log import EventLogError, HistoryRow, SqliteEventLog
from portal.telemetry.normalizer import CanonicalEvent, Usage, normalize

NOW = datetime(2026, 10, 19, 10, 50, tzinfo=timezone.utc)


def _append(log: SqliteEventLog, **raw) -> None:
    log.append(normalize(raw, now=NOW))


def test_history_groups_by_hour_and_model(event_log: SqliteEventLog) -> None:
    _append(event_log, ts="2026-10-19T10:15:00Z", model="gpt", usage={"inputTokens": 3, "outputTokens": 2})
    _append(event_log, ts="2026-10-19T10:45:00Z", model="gpt", usage={"inputTokens": 1, "outputTokens": 1})

    rows = event_log.history(1, now=NOW)

    assert rows == [HistoryRow(hour="2026-10-19T10:00:00Z", model="gpt", input_tokens=4, output_tokens=3, cached_tokens=0)]


def test_history_orders_by_hour_then_usage(event_log: SqliteEventLog) -> None:
    _append(event_log, ts="2026-10-19T08:30:00Z", model="gpt", usage={"inputTokens": 50})
    _append(event_log, ts="2026-10-19T09:10:00Z", model="small", usage={"inputTokens": 1})
    _append(event_log, ts="2026-10-19T09:20:00Z", model="big", usage={"inputTokens": 10, "outputTokens": 10})
    _append(event_log, ts="2026-10-19T09:40:00Z", usage={"inputTokens": 5, "cachedTokens": 9})

    rows = event_log.history(3, now=NOW)

    assert [(row.hour, row.model) for row in rows] == [
        ("2026-10-19T09:00:00Z", "big"),
        ("2026-10-19T09:00:00Z", "unknown"),
        ("2026-10-19T09:00:00Z", "small"),
        ("2026-10-19T08:00:00Z", "gpt"),
    ]
    assert rows[1].cached_tokens == 9


def test_history_excludes_events_outside_window(event_log: SqliteEventLog) -> None:
    _append(event_log, ts="2026-10-19T07:00:00Z", model="gpt", usage={"inputTokens": 1})
    _append(event_log, ts="2026-10-19T10:00:00Z", model="gpt", usage={"inputTokens": 2})

    rows = event_log.history(2, now=NOW)

    assert len(rows) == 1
    assert rows[0].input_tokens == 2


def test_load_recent_is_newest_first_and_bounded(event_log: SqliteEventLog) -> None:
    _append(event_log, ts="2026-10-19T09:00:00Z", agentId="b")
    _append(event_log, ts="2026-10-19T08:00:00Z", agentId="a")
    _append(event_log, ts="2026-10-19T10:00:00Z", agentId="c")

    payloads = event_log.load_recent(2)

    assert [json.loads(item)["agentId"] for item in payloads] == ["c", "b"]


def test_payload_round_trips_canonical_event(event_log: SqliteEventLog) -> None:
    event = normalize({"ts": "2026-10-19T09:00:00Z", "agentId": "a", "usage": {"inputTokens": "4"}}, now=NOW)
    event_log.append(event)

    (payload,) = event_log.load_recent(10)

    assert normalize(json.loads(payload), now=NOW) == event


def test_open_creates_parent_directories(tmp_path: Path) -> None:
    log = SqliteEventLog.open(tmp_path / "nested" / "dir" / "events.db")
    try:
        assert log.count() == 0
        assert (tmp_path / "nested" / "dir" / "events.db").exists()
    finally:
        log.close()


def test_append_after_close_raises_event_log_error(tmp_path: Path) -> None:
    log = SqliteEventLog.open(tmp_path / "events.db")
    log.close()

    with pytest.raises(EventLogError):
        log.append(normalize({"agentId": "a"}, now=NOW))


def test_append_wraps_integer_overflow(event_log: SqliteEventLog) -> None:
    event = CanonicalEvent(ts="2026-10-19T10:00:00.000Z", agent_id="a1", usage=Usage(input_tokens=2**64))

    with pytest.raises(EventLogError):
        event_log.append(event)

    assert event_log.count() == 0
