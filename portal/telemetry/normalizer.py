"""Telemetry layer: turn loosely-shaped raw events into canonical, fully-defaulted records."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

RawEvent = Mapping[str, Any]

DEFAULT_EVENT_TYPE = "heartbeat"
UNKNOWN_MODEL = "unknown"
# Largest value a SQLite INTEGER column can hold.
MAX_TOKEN_COUNT = 2**63 - 1

_USAGE_KEYS = ("inputTokens", "outputTokens", "cachedTokens")


def format_ts(moment: datetime) -> str:
    """Render a datetime as UTC ISO-8601 with millisecond precision and `Z` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return format_ts(utc_now())


@dataclass(frozen=True)
class Usage:
    """Token usage triple; always non-negative."""

    input_tokens: int = 0
    output_tokens: int = 0
    cached_tokens: int = 0

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            cached_tokens=self.cached_tokens + other.cached_tokens,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cachedTokens": self.cached_tokens,
        }


@dataclass(frozen=True)
class CanonicalEvent:
    """Immutable, normalized telemetry event."""

    ts: str
    type: str = DEFAULT_EVENT_TYPE
    agent_id: str | None = None
    model: str | None = None
    host: str | None = None
    status: str | None = None
    job_id: str | None = None
    job_status: str | None = None
    session_id: str | None = None
    session_status: str | None = None
    usage: Usage = field(default_factory=Usage)

    def to_dict(self) -> dict[str, Any]:
        """Wire/persisted shape; feeding it back to `normalize` yields an equal event."""
        return {
            "ts": self.ts,
            "type": self.type,
            "agentId": self.agent_id,
            "model": self.model,
            "host": self.host,
            "status": self.status,
            "jobId": self.job_id,
            "jobStatus": self.job_status,
            "sessionId": self.session_id,
            "sessionStatus": self.session_status,
            "usage": self.usage.to_dict(),
        }


def coerce_token_count(value: Any) -> int:
    """Coerce one usage counter to a non-negative int, 0 when missing, invalid or out of range."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if 0 <= value <= MAX_TOKEN_COUNT else 0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    if not math.isfinite(number) or number < 0:
        return 0
    count = int(number)
    return count if count <= MAX_TOKEN_COUNT else 0


def _coerce_text(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        try:
            return str(value)
        except ValueError:
            return None
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def _parse_ts(value: Any) -> datetime | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            if not math.isfinite(value):
                return None
            seconds = value / 1000 if abs(value) > 1e12 else value
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        return None


def normalize_usage(raw: RawEvent) -> Usage:
    """Read usage from the nested `usage` mapping, or flattened top-level counters."""
    source = raw.get("usage")
    if not isinstance(source, Mapping):
        source = raw
    return Usage(
        input_tokens=coerce_token_count(source.get("inputTokens")),
        output_tokens=coerce_token_count(source.get("outputTokens")),
        cached_tokens=coerce_token_count(source.get("cachedTokens")),
    )


def normalize(raw: RawEvent, *, now: datetime | None = None) -> CanonicalEvent:
    """Total normalization: never raises, missing or malformed fields fall back to defaults."""
    if not isinstance(raw, Mapping):
        raw = {}
    raw_ts = raw.get("ts")
    if raw_ts is None:
        raw_ts = raw.get("timestamp")
    moment = _parse_ts(raw_ts) or now or utc_now()
    return CanonicalEvent(
        ts=format_ts(moment),
        type=_coerce_text(raw.get("type")) or DEFAULT_EVENT_TYPE,
        agent_id=_coerce_text(raw.get("agentId")),
        model=_coerce_text(raw.get("model")),
        host=_coerce_text(raw.get("host")),
        status=_coerce_text(raw.get("status")),
        job_id=_coerce_text(raw.get("jobId")),
        job_status=_coerce_text(raw.get("jobStatus")),
        session_id=_coerce_text(raw.get("sessionId")),
        session_status=_coerce_text(raw.get("sessionStatus")),
        usage=normalize_usage(raw),
    )
