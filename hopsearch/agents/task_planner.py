from __future__ import annotations

import json
import re
import time
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from hopsearch.config import settings
from hopsearch.exceptions import PlanningError
from hopsearch.llm_client import client as llm_client, extract_response_text, get_planner_model
from hopsearch.models.plan import Task
from hopsearch.services import logger as log_service
from hopsearch.services.json_extract import extract_json_object
from hopsearch.services.prompt_store import render_prompt

_QUERY_CLAUSE_RE = re.compile(r"\bquery\s*:\s*(.+)$", re.IGNORECASE)
_STEP_PREFIX_RE = re.compile(r"^\s*(?:step\s*\d+\s*[:.)-]?\s*|\d+\s*[.):]\s+)", re.IGNORECASE)
_IMPERATIVE_RE = re.compile(
    r"^(?:search(?:\s+the\s+web)?\s+for|search|look\s+up|look\s+for|find\s+out(?:\s+about)?|find|"
    r"research|identify|determine|retrieve|gather(?:\s+information\s+(?:on|about))?|get|"
    r"query\s+for)\b[\s:,-]*",
    re.IGNORECASE,
)
_TRAILING_PUNCT = ".,;:!?-"
_BACK_REFERENCE_RE = re.compile(
    r"\b(?:compare|comparing|contrast|combine|combining|based\s+on|using\s+the|then|"
    r"synthesi[sz]e|summari[sz]e|previous|earlier|above|those|these\s+results)\b",
    re.IGNORECASE,
)

_COMPARISON_PATTERNS = [
    re.compile(r"\bdifferences?\s+between\s+(?P<a>.+?)\s+and\s+(?P<b>.+)", re.IGNORECASE),
    re.compile(r"\bcompar(?:e|ing)\s+(?P<a>.+?)\s+(?:and|with|to|vs\.?|versus)\s+(?P<b>.+)", re.IGNORECASE),
    re.compile(r"(?P<a>.+?)\s+(?:vs\.?|versus)\s+(?P<b>.+)", re.IGNORECASE),
]
_SEQUENCE_SPLIT_RE = re.compile(r";\s*|,\s*then\b|,?\s*\bafter\s+that\b,?", re.IGNORECASE)
_THEN_SPLIT_RE = re.compile(r",?\s*\bthen\b", re.IGNORECASE)
_LEADING_FILLER_RE = re.compile(r"^(?:first(?:ly)?|next|then|finally|and)\b[\s,]*", re.IGNORECASE)


def _collapse(text: str) -> str:
    return " ".join(text.split()).strip()


def _clean_fragment(text: str) -> str:
    cleaned = _collapse(_LEADING_FILLER_RE.sub("", _collapse(text)))
    return cleaned.strip(_TRAILING_PUNCT + " ")


def focus_query(step: str) -> str:
    """Turn a plan step into a short search-engine query.

    ``"Step 2: Search for the population of Lagos."`` becomes
    ``"the population of Lagos"``; an explicit ``query:`` clause wins outright.
    """
    text = _collapse(step)
    clause = _QUERY_CLAUSE_RE.search(text)
    if clause:
        text = clause.group(1)
    text = text.strip().strip("\"'“”")

    text = _STEP_PREFIX_RE.sub("", text)
    previous = None
    while previous != text:
        previous = text
        text = _IMPERATIVE_RE.sub("", text).strip()

    focused = _collapse(text).strip(_TRAILING_PUNCT + " ")
    return focused or _collapse(step).strip(_TRAILING_PUNCT + " ")


def _refers_back(step: str) -> bool:
    return bool(_BACK_REFERENCE_RE.search(step))


def split_comparison(query: str) -> tuple[str, str] | None:
    text = _collapse(query).rstrip(_TRAILING_PUNCT)
    for pattern in _COMPARISON_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        side_a = _clean_fragment(match.group("a"))
        side_b = _clean_fragment(match.group("b"))
        if side_a and side_b and side_a.lower() != side_b.lower():
            return side_a, side_b
    return None


def split_sequence(query: str) -> list[str]:
    text = _collapse(query)
    parts = _SEQUENCE_SPLIT_RE.split(text)
    if re.search(r"\bfirst\b", text, re.IGNORECASE):
        parts = [piece for part in parts for piece in _THEN_SPLIT_RE.split(part)]
    segments = [_clean_fragment(part) for part in parts]
    return [segment for segment in segments if segment]


def decompose_query(query: str) -> list[Task]:
    """Plan a query without the model: comparison sides, ordered steps, or one search."""
    comparison = split_comparison(query)
    if comparison:
        side_a, side_b = comparison
        return [
            Task(id="task_0", description=f"Research {side_a}", search_query=side_a),
            Task(id="task_1", description=f"Research {side_b}", search_query=side_b),
            Task(
                id="task_2",
                description=f"Compare {side_a} and {side_b}",
                search_query=f"{side_a} vs {side_b}",
                depends_on=["task_0", "task_1"],
            ),
        ]

    segments = split_sequence(query)
    if len(segments) >= 2:
        return [
            Task(
                id=f"task_{idx}",
                description=segment,
                search_query=focus_query(segment),
                depends_on=[f"task_{idx - 1}"] if idx > 0 else [],
            )
            for idx, segment in enumerate(segments)
        ]

    text = _collapse(query)
    return [Task(id="task_0", description=text, search_query=focus_query(text))]


class _PlannedTask(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    description: str = ""
    search_query: str = Field(default="", alias="searchQuery")
    depends_on: list[str | int] = Field(default_factory=list, alias="dependsOn")


class _PlanPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tasks: list[_PlannedTask]


class TaskPlanner:
    """Break a query into ordered search tasks with advisory dependencies."""

    name = "task_planner"

    def __init__(self, model: str | None = None, mode: str | None = None, max_tasks: int | None = None):
        self.model = model or get_planner_model()
        self.mode = (mode or settings.planner_mode).lower().strip()
        self.max_tasks = max(1, max_tasks or settings.planner_max_tasks)
        self.client = None

    def tasks_from_steps(self, steps: list[str]) -> list[Task]:
        tasks: list[Task] = []
        seen: set[str] = set()
        for step in steps:
            description = _collapse(step)
            if not description:
                continue
            search_query = focus_query(description)
            key = search_query.lower()
            if key in seen:
                continue
            seen.add(key)
            idx = len(tasks)
            depends_on = [task.id for task in tasks] if idx > 0 and _refers_back(description) else []
            tasks.append(
                Task(
                    id=f"task_{idx}",
                    description=description,
                    search_query=search_query,
                    depends_on=depends_on,
                )
            )
            if len(tasks) >= self.max_tasks:
                break
        return tasks

    async def _ask_model(self, query: str) -> str:
        active_client = self.client or llm_client()
        t0 = time.monotonic()
        try:
            response = await active_client.messages.create(
                model=self.model,
                max_tokens=2048,
                system=render_prompt("task_planner.system_prompt"),
                messages=[
                    {
                        "role": "user",
                        "content": render_prompt(
                            "task_planner.user_prompt", query=query, max_tasks=self.max_tasks
                        ),
                    }
                ],
            )
        except Exception as e:
            log_service.log_llm_call(
                model=self.model,
                caller=self.name,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="failed",
                error=str(e),
            )
            raise PlanningError(f"Task planning call failed: {e}") from e

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=self.model,
            caller=self.name,
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return extract_response_text(response)

    def _tasks_from_reply(self, text: str) -> list[Task]:
        payload: dict[str, Any] = extract_json_object(text)
        planned = _PlanPayload.model_validate(payload).tasks

        kept: list[tuple[int, _PlannedTask, str]] = []
        seen: set[str] = set()
        for original_idx, item in enumerate(planned):
            search_query = focus_query(item.search_query or item.description)
            if not search_query:
                continue
            key = search_query.lower()
            if key in seen:
                continue
            seen.add(key)
            kept.append((original_idx, item, search_query))
            if len(kept) >= self.max_tasks:
                break

        # The model may number tasks its own way; map whatever it used onto task_<i>.
        id_map: dict[str, str] = {}
        for new_idx, (original_idx, item, _) in enumerate(kept):
            new_id = f"task_{new_idx}"
            id_map.setdefault(f"task_{original_idx}", new_id)
            if item.id:
                id_map[item.id.strip()] = new_id

        tasks: list[Task] = []
        for new_idx, (_, item, search_query) in enumerate(kept):
            new_id = f"task_{new_idx}"
            depends_on: list[str] = []
            for dep in item.depends_on:
                mapped = id_map.get(str(dep).strip())
                if mapped is None:
                    logger.debug(f"Dropping unknown dependency '{dep}' for {new_id}")
                    continue
                if mapped != new_id and mapped not in depends_on:
                    depends_on.append(mapped)
            tasks.append(
                Task(
                    id=new_id,
                    description=_collapse(item.description) or search_query,
                    search_query=search_query,
                    depends_on=depends_on,
                )
            )
        return tasks

    async def plan_tasks(self, query: str, suggested_steps: list[str] | None = None) -> list[Task]:
        """Return the ordered task list for a query.

        Suggested steps from the analyzer seed one task each. Without them the
        model is asked for a plan (``planner_mode == "llm"``) or the query is
        split deterministically. A malformed model reply falls back to the
        deterministic split; a failed call raises ``PlanningError``.
        """
        if not query or not query.strip():
            raise PlanningError("Cannot plan tasks for an empty query")

        t0 = time.monotonic()
        source = "steps"
        if suggested_steps:
            tasks = self.tasks_from_steps(suggested_steps)
        elif self.mode == "llm":
            text = await self._ask_model(query)
            source = "llm"
            try:
                tasks = self._tasks_from_reply(text)
            except (json.JSONDecodeError, ValidationError, RecursionError) as e:
                logger.warning(f"Planner reply unusable, splitting query instead: {e}")
                tasks = []
            if not tasks:
                source = "heuristic"
                tasks = decompose_query(query)[: self.max_tasks]
        else:
            source = "heuristic"
            tasks = decompose_query(query)[: self.max_tasks]

        if not tasks:
            raise PlanningError(f"No search tasks could be planned for: {query[:80]}")

        log_service.log_pipeline_step(
            "task_planning",
            "completed",
            {
                "source": source,
                "tasks": [task.search_query for task in tasks],
                "duration_ms": int((time.monotonic() - t0) * 1000),
            },
        )
        return tasks
