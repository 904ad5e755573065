"""In-memory telemetry for search and generation calls."""
from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Literal

TelemetryType = Literal[
    "search_started",
    "search_succeeded",
    "search_failed",
    "llm_started",
    "llm_completed",
    "llm_failed",
]

MAX_EVENTS = 1000


@dataclass(slots=True)
class TelemetryEvent:
    type: str
    query: str | None = None
    duration_ms: int | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class TelemetryLog:
    """Ring buffer of the most recent telemetry events."""

    def __init__(self, max_events: int = MAX_EVENTS):
        self._events: deque[TelemetryEvent] = deque(maxlen=max(max_events, 1))
        self._lock = threading.Lock()

    def record(
        self,
        event_type: str,
        *,
        query: str | None = None,
        duration_ms: int | None = None,
        error: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TelemetryEvent:
        event = TelemetryEvent(
            type=event_type,
            query=query,
            duration_ms=duration_ms,
            error=error,
            metadata=dict(metadata or {}),
        )
        with self._lock:
            self._events.append(event)
        return event

    def events(self, event_type: str | None = None) -> list[TelemetryEvent]:
        with self._lock:
            snapshot = list(self._events)
        if event_type:
            return [event for event in snapshot if event.type == event_type]
        return snapshot

    def stats(self) -> dict[str, Any]:
        snapshot = self.events()
        by_type: dict[str, int] = {}
        durations: dict[str, list[int]] = {}
        errors = 0
        for event in snapshot:
            by_type[event.type] = by_type.get(event.type, 0) + 1
            if event.duration_ms:
                durations.setdefault(event.type, []).append(event.duration_ms)
            if event.error:
                errors += 1

        return {
            "total": len(snapshot),
            "byType": by_type,
            "avgDuration": {
                event_type: round(sum(values) / len(values))
                for event_type, values in durations.items()
            },
            "errors": errors,
        }

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


telemetry = TelemetryLog()
