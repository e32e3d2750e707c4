"""Collector: parse one log line into a raw event (JSON object or loose `key=value` pairs)."""

from __future__ import annotations

import json
import re
from typing import Any

_PAIR_RE = re.compile(r"([a-zA-Z0-9_]+)=(\S+)")

_EVENT_FIELDS = (
    "ts",
    "type",
    "agentId",
    "model",
    "host",
    "status",
    "jobId",
    "jobStatus",
    "sessionId",
    "sessionStatus",
)
_USAGE_FIELDS = ("inputTokens", "outputTokens", "cachedTokens")


def parse_loose_pairs(text: str) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for match in _PAIR_RE.finditer(text):
        # `a=b=c` keeps only `b`
        pairs[match.group(1)] = match.group(2).split("=", 1)[0]
    return pairs


def parse_line(line: str) -> dict[str, Any] | None:
    """Return a raw event, or None for blank lines and lines without any identifier."""
    text = line.strip()
    if not text:
        return None

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    pairs = parse_loose_pairs(text)
    if not (pairs.get("agentId") or pairs.get("jobId") or pairs.get("sessionId")):
        return None

    event: dict[str, Any] = {key: pairs[key] for key in _EVENT_FIELDS if pairs.get(key)}
    event.setdefault("type", "heartbeat")
    event["usage"] = {key: pairs.get(key, 0) for key in _USAGE_FIELDS}
    return event
