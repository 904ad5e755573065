from __future__ import annotations

from typing import Any

from hopsearch.models.events import EventType, SSEEvent
from hopsearch.models.plan import Task
from hopsearch.models.quality import QualityCheckResult
from hopsearch.models.search import SearchResult, results_to_dicts


def _task_dict(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "description": task.description,
        "searchQuery": task.search_query,
        "dependsOn": list(task.depends_on),
    }


def thinking(text: str) -> SSEEvent:
    return SSEEvent(event=EventType.THINKING, data={"text": text})


def progress(label: str, details: dict[str, Any] | None = None) -> SSEEvent:
    data: dict[str, Any] = {"label": label}
    if details is not None:
        data["details"] = details
    return SSEEvent(event=EventType.PROGRESS, data=data)


def tool_call(name: str, params: dict[str, Any]) -> SSEEvent:
    return SSEEvent(event=EventType.TOOL_CALL, data={"name": name, "params": params})


def sources_update(results: list[SearchResult]) -> SSEEvent:
    return SSEEvent(event=EventType.SOURCES_UPDATE, data={"results": results_to_dicts(results)})


def step_results(step: int, task: Task, results: list[SearchResult]) -> SSEEvent:
    return SSEEvent(
        event=EventType.STEP_RESULTS,
        data={"step": step, "task": _task_dict(task), "results": results_to_dicts(results)},
    )


def step_complete(step: int, summary: str) -> SSEEvent:
    return SSEEvent(event=EventType.STEP_COMPLETE, data={"step": step, "summary": summary})


def mock_search_detected(is_mock: bool) -> SSEEvent:
    return SSEEvent(event=EventType.MOCK_SEARCH_DETECTED, data={"isMock": is_mock})


def answer_token(chunk: str) -> SSEEvent:
    return SSEEvent(event=EventType.ANSWER_TOKEN, data={"chunk": chunk})


def answer_complete(text: str, tokens_used: int = 0, runtime_ms: int | None = None) -> SSEEvent:
    data: dict[str, Any] = {"text": text, "tokens_used": tokens_used}
    if runtime_ms is not None:
        data["runtime_ms"] = runtime_ms
    return SSEEvent(event=EventType.ANSWER_COMPLETE, data=data)


def quality_checked(result: QualityCheckResult) -> SSEEvent:
    return SSEEvent(event=EventType.QUALITY_CHECKED, data=result.to_dict())


def follow_ups(questions: list[str]) -> SSEEvent:
    return SSEEvent(event=EventType.FOLLOW_UPS, data={"questions": questions})


def error(message: str, stage: str | None = None) -> SSEEvent:
    data: dict[str, Any] = {"message": message}
    if stage:
        data["stage"] = stage
    return SSEEvent(event=EventType.ERROR, data=data)
