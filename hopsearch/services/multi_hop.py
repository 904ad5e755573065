from __future__ import annotations

import time
from typing import TYPE_CHECKING, Callable

from loguru import logger

from hopsearch.config import settings
from hopsearch.exceptions import PlanningError
from hopsearch.models.analysis import QueryAnalysis
from hopsearch.models.plan import Task
from hopsearch.models.search import AnalysisSummary, MultiHopResult, SearchResult
from hopsearch.services import logger as log_service
from hopsearch.services import task_scheduler
from hopsearch.services.heuristics import Heuristics, MultiHopRules, get_heuristics
from hopsearch.tools import search_provider

if TYPE_CHECKING:
    from hopsearch.agents.task_planner import TaskPlanner

ProgressCallback = Callable[[int, int, Task, list[SearchResult]], None]


def bound_query(query: str, rules: MultiHopRules) -> str:
    """Keep a search query under the provider-friendly length limit.

    Cuts at the last space before the limit when that space is past the
    minimum offset, otherwise truncates hard.
    """
    if len(query) <= rules.max_query_chars:
        return query
    truncated = query[: rules.max_query_chars]
    last_space = truncated.rfind(" ")
    return truncated[:last_space] if last_space > rules.min_cut_offset else truncated


def simplify_for_retry(query: str, rules: MultiHopRules) -> str:
    words = [word for word in query.split() if len(word) >= rules.retry_word_min_chars]
    return " ".join(words[: rules.retry_max_words])


def simplify_simple_query(query: str) -> str:
    """Drop anything after the first ``:`` and then the first ``?``."""
    return query.split(":")[0].split("?")[0].strip()


async def _search(query: str) -> tuple[list[SearchResult], bool]:
    """One provider call; a failure counts as an empty, non-mock hop."""
    try:
        response = await search_provider.search(query)
    except Exception as e:
        logger.warning(f"Search failed for '{query[:80]}', continuing with no results: {e}")
        return [], False
    return response.results, response.is_mock_search


def _summary(analysis: QueryAnalysis) -> AnalysisSummary:
    return AnalysisSummary(
        needs_multi_step=analysis.needs_multi_step,
        complexity=analysis.complexity,
    )


async def _simple_search(query: str, analysis: QueryAnalysis, rules: MultiHopRules) -> MultiHopResult:
    results, has_mock = await _search(query)
    final_query = query

    if not results:
        simplified = simplify_simple_query(query)
        if simplified and simplified != query:
            logger.info(f"Retrying simple search with '{simplified}'")
            retry_results, retry_mock = await _search(simplified)
            has_mock = has_mock or retry_mock
            if retry_results:
                results = retry_results
                final_query = simplified

    task = Task(id="task_0", description=query, search_query=final_query)
    return MultiHopResult(
        final_results=list(results[-rules.final_results_limit :]),
        all_results=list(results),
        execution_plan=[task],
        analysis=_summary(analysis),
        has_mock_search=has_mock,
        task_results={task.id: list(results)},
    )


async def _run_hop(task: Task, rules: MultiHopRules) -> tuple[Task, list[SearchResult], bool]:
    search_query = bound_query(task.search_query, rules)
    results, has_mock = await _search(search_query)

    if not results and len(search_query) > rules.retry_min_query_chars:
        simplified = simplify_for_retry(search_query, rules)
        if simplified and simplified != search_query:
            logger.info(f"Retrying {task.id} with simplified query '{simplified}'")
            retry_results, retry_mock = await _search(simplified)
            has_mock = has_mock or retry_mock
            if retry_results:
                results = retry_results
                search_query = simplified

    return task.with_query(search_query), results, has_mock


async def execute_multi_hop_search(
    query: str,
    analysis: QueryAnalysis,
    on_progress: ProgressCallback | None = None,
    *,
    tasks: list[Task] | None = None,
    planner: "TaskPlanner | None" = None,
    strict_dependencies: bool | None = None,
    heuristics: Heuristics | None = None,
) -> MultiHopResult:
    """Run one search, or a sequential plan of searches, for a query.

    Hops run one at a time in plan order and each hop, retry included, settles
    before the next starts. ``depends_on`` is advisory: unmet dependencies are
    logged, not enforced, unless strict ordering is requested.
    ``on_progress(step, total, task, results)`` fires once per hop, in order.
    """
    rules = (heuristics or get_heuristics()).multihop
    if not analysis.needs_multi_step:
        return await _simple_search(query, analysis, rules)

    if tasks is None:
        if planner is None:
            from hopsearch.agents.task_planner import TaskPlanner

            planner = TaskPlanner()
        tasks = await planner.plan_tasks(query, analysis.suggested_steps)
    if not tasks:
        raise PlanningError(f"No search tasks planned for query: {query[:80]}")

    strict = settings.multihop_strict_dependencies if strict_dependencies is None else strict_dependencies
    if strict:
        tasks = task_scheduler.order_by_dependencies(tasks)

    all_results: list[SearchResult] = []
    executed: list[Task] = []
    task_results: dict[str, list[SearchResult]] = {}
    has_mock_search = False
    total = len(tasks)
    t0 = time.monotonic()

    for index, task in enumerate(tasks, start=1):
        unmet = [dep for dep in task.depends_on if dep not in task_results]
        if unmet:
            logger.warning(f"Task {task.id} has unmet dependencies: {unmet}")

        final_task, results, hop_mock = await _run_hop(task, rules)
        has_mock_search = has_mock_search or hop_mock
        all_results.extend(results)
        task_results[task.id] = list(results)
        executed.append(final_task)

        if on_progress is not None:
            try:
                on_progress(index, total, final_task, list(results))
            except Exception:
                logger.exception(f"Progress callback failed for {task.id}")

    log_service.log_pipeline_step(
        "multi_hop_search",
        "completed",
        {
            "tasks": total,
            "results": len(all_results),
            "has_mock_search": has_mock_search,
            "duration_ms": int((time.monotonic() - t0) * 1000),
        },
    )

    return MultiHopResult(
        final_results=all_results[-rules.final_results_limit :] if all_results else [],
        all_results=all_results,
        execution_plan=executed,
        analysis=_summary(analysis),
        has_mock_search=has_mock_search,
        task_results=task_results,
    )
