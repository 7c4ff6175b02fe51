"""Dispatch telemetry: one JSON line per dispatch in ``<home>/logs``.

Writing is best effort. A log directory that cannot be created or
appended to never changes the outcome of a dispatch.
"""

from __future__ import annotations

import json
import os
import sys
import time
from collections import Counter, deque
from typing import Any, Iterable, Iterator

from recipectl.settings import RuntimeSettings
from recipectl.utils.schema import TELEMETRY_SCHEMA, validate

_DISABLE_VALUES = {"0", "false", "no", "off"}


def telemetry_enabled() -> bool:
    return os.getenv("RECIPECTL_TELEMETRY", "1").lower() not in _DISABLE_VALUES


def record_structured_event(
    settings: RuntimeSettings,
    event: str,
    *,
    payload: dict[str, Any] | None = None,
    level: str = "info",
    status: str | None = None,
    component: str | None = None,
    duration_ms: float | None = None,
) -> bool:
    """Append one record; returns ``False`` when nothing was written.

    Malformed records raise ``jsonschema.ValidationError``.
    """
    if not telemetry_enabled():
        return False
    record: dict[str, Any] = {"ts": time.time(), "event": event, "payload": payload or {}, "level": level}
    optional = {"status": status, "component": component, "durationMs": duration_ms}
    record.update((key, value) for key, value in optional.items() if value is not None)
    validate(record, TELEMETRY_SCHEMA)
    line = json.dumps(record, ensure_ascii=False) + "\n"
    try:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        with settings.telemetry_log.open("a", encoding="utf-8") as fh:
            fh.write(line)
    except OSError as exc:
        print(f"recipectl: telemetry not written to {settings.telemetry_log}: {exc}", file=sys.stderr)
        return False
    return True


def iter_events(settings: RuntimeSettings) -> Iterator[dict[str, Any]]:
    """Yield logged records in order, skipping blank or corrupt lines."""
    log_path = settings.telemetry_log
    if not log_path.is_file():
        return
    with log_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            if not line.strip():
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue


def recent_events(settings: RuntimeSettings, limit: int = 0) -> list[dict[str, Any]]:
    """The last ``limit`` records, or all of them when ``limit`` is not positive."""
    if limit > 0:
        return list(deque(iter_events(settings), maxlen=limit))
    return list(iter_events(settings))


def summarize(events: Iterable[dict[str, Any]]) -> dict[str, Any]:
    by_event: Counter[str] = Counter()
    by_status: Counter[str] = Counter()
    by_recipe: Counter[str] = Counter()
    for evt in events:
        by_event[evt.get("event", "unknown")] += 1
        by_status[evt.get("status", "unknown")] += 1
        recipe = (evt.get("payload") or {}).get("recipe")
        if recipe:
            by_recipe[recipe] += 1
    return {
        "total": sum(by_event.values()),
        "by_event": dict(by_event),
        "by_status": dict(by_status),
        "by_recipe": dict(by_recipe),
    }


def clear(settings: RuntimeSettings) -> None:
    settings.telemetry_log.unlink(missing_ok=True)


__all__ = ["clear", "iter_events", "recent_events", "record_structured_event", "summarize", "telemetry_enabled"]
