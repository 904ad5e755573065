"""Fan-out of the orchestrator's ordered event stream to subscribers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable

from loguru import logger

from hopsearch.models.events import EventType, SSEEvent

EventSubscriber = Callable[[SSEEvent], None]


async def publish(
    stream: AsyncIterator[SSEEvent],
    subscribers: list[EventSubscriber],
) -> list[SSEEvent]:
    """Deliver every event to every subscriber, in stream order.

    Subscribers are notified synchronously; one that raises is logged and the
    stream keeps flowing to the rest. Returns the events seen.
    """
    seen: list[SSEEvent] = []
    async for event in stream:
        seen.append(event)
        for subscriber in subscribers:
            try:
                subscriber(event)
            except Exception:
                logger.exception(f"Event subscriber failed on {event.event.value}")
    return seen


@dataclass
class AgentCallbacks:
    """Callback-style subscriber: routes each event variant to a named hook."""

    on_thinking: Callable[[str], Any] | None = None
    on_progress: Callable[[str, dict[str, Any] | None], Any] | None = None
    on_tool_call: Callable[[str, dict[str, Any]], Any] | None = None
    on_sources_update: Callable[[list[dict[str, Any]]], Any] | None = None
    on_step_results: Callable[[int, dict[str, Any], list[dict[str, Any]]], Any] | None = None
    on_step_complete: Callable[[int, str], Any] | None = None
    on_mock_search_detected: Callable[[bool], Any] | None = None
    on_token: Callable[[str], Any] | None = None
    on_complete: Callable[[str], Any] | None = None
    on_error: Callable[[str], Any] | None = None

    def __call__(self, event: SSEEvent) -> None:
        data = event.data
        kind = event.event
        if kind == EventType.THINKING and self.on_thinking:
            self.on_thinking(data["text"])
        elif kind == EventType.PROGRESS and self.on_progress:
            self.on_progress(data["label"], data.get("details"))
        elif kind == EventType.TOOL_CALL and self.on_tool_call:
            self.on_tool_call(data["name"], data["params"])
        elif kind == EventType.SOURCES_UPDATE and self.on_sources_update:
            self.on_sources_update(data["results"])
        elif kind == EventType.STEP_RESULTS and self.on_step_results:
            self.on_step_results(data["step"], data["task"], data["results"])
        elif kind == EventType.STEP_COMPLETE and self.on_step_complete:
            self.on_step_complete(data["step"], data["summary"])
        elif kind == EventType.MOCK_SEARCH_DETECTED and self.on_mock_search_detected:
            self.on_mock_search_detected(data["isMock"])
        elif kind == EventType.ANSWER_TOKEN and self.on_token:
            self.on_token(data["chunk"])
        elif kind == EventType.ANSWER_COMPLETE and self.on_complete:
            self.on_complete(data["text"])
        elif kind == EventType.ERROR and self.on_error:
            self.on_error(data["message"])
