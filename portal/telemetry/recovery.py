"""Startup recovery: replay the durable log, else load the one-time seed file."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from portal.infra.db.event_log import EventLogError, SqliteEventLog
from portal.infra.observability.logger import get_logger
from portal.telemetry.engine import AggregationEngine

logger = get_logger(__name__)


@dataclass(frozen=True)
class RecoveryReport:
    restored: int = 0
    skipped: int = 0
    seeded: int = 0
    seed_skipped: int = 0


def replay_log(engine: AggregationEngine, event_log: SqliteEventLog, limit: int) -> tuple[int, int]:
    """Replay up to `limit` newest log rows oldest-first without re-appending them."""
    payloads = event_log.load_recent(limit)
    restored = 0
    skipped = 0
    for payload in reversed(payloads):
        try:
            parsed = json.loads(payload)
        except (TypeError, json.JSONDecodeError):
            skipped += 1
            continue
        if not isinstance(parsed, dict):
            skipped += 1
            continue
        engine.ingest(parsed, persist=False)
        restored += 1
    return restored, skipped


def load_seed(engine: AggregationEngine, seed_path: Path) -> tuple[int, int]:
    """Ingest a seed file (a list, or an object with `events`) through the persisting path."""
    if not seed_path.exists():
        logger.info("recovery.seed.missing path=%s", seed_path)
        return 0, 0
    try:
        parsed = json.loads(seed_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.error("recovery.seed.unreadable path=%s error=%s", seed_path, exc)
        return 0, 0

    events = parsed if isinstance(parsed, list) else (
        parsed.get("events") if isinstance(parsed, dict) else None
    )
    if not isinstance(events, list):
        logger.error("recovery.seed.invalid path=%s reason=no events list", seed_path)
        return 0, 0

    seeded = 0
    skipped = 0
    for item in events:
        if not isinstance(item, dict):
            skipped += 1
            continue
        try:
            engine.ingest(item)
        except EventLogError as exc:
            logger.warning("recovery.seed.entry_failed path=%s error=%s", seed_path, exc)
            skipped += 1
            continue
        seeded += 1
    return seeded, skipped


def recover(
    engine: AggregationEngine,
    event_log: SqliteEventLog,
    *,
    seed_path: Path | None,
    limit: int = 5000,
) -> RecoveryReport:
    """Rebuild derived state after a restart; never raises on log/seed problems."""
    restored = skipped = seeded = seed_skipped = 0
    try:
        restored, skipped = replay_log(engine, event_log, limit)
    except EventLogError:
        logger.exception("recovery.replay.failed")

    if not engine.state.agents and seed_path is not None:
        seeded, seed_skipped = load_seed(engine, seed_path)

    report = RecoveryReport(
        restored=restored,
        skipped=skipped,
        seeded=seeded,
        seed_skipped=seed_skipped,
    )
    logger.info(
        "recovery.done restored=%s skipped=%s seeded=%s seed_skipped=%s",
        report.restored,
        report.skipped,
        report.seeded,
        report.seed_skipped,
    )
    return report
