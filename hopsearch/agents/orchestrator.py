from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator

from loguru import logger

from hopsearch.agents.answer_agent import AnswerAgent, format_plan_context, format_search_context
from hopsearch.agents.query_analyzer import QueryAnalyzer
from hopsearch.agents.task_planner import TaskPlanner
from hopsearch.config import settings
from hopsearch.exceptions import HopSearchError
from hopsearch.models.analysis import QueryAnalysis
from hopsearch.models.events import EventType, SSEEvent
from hopsearch.models.plan import Task
from hopsearch.models.quality import QualityCheckResult
from hopsearch.models.schemas import AnswerSettings, ChatMessage
from hopsearch.models.search import MultiHopResult, SearchResult
from hopsearch.services import logger as log_service
from hopsearch.services import reranker, streaming
from hopsearch.services.multi_hop import execute_multi_hop_search
from hopsearch.services.prompt_store import render_prompt
from hopsearch.services.quality import check_response_quality
from hopsearch.tools.web_utils import dedupe_by_url


@dataclass
class AgentRunResult:
    answer: str
    sources: list[SearchResult]
    quality: QualityCheckResult | None
    has_mock_search: bool
    follow_ups: list[str] = field(default_factory=list)
    error: str | None = None
    events: list[SSEEvent] = field(default_factory=list)


@dataclass
class _RunState:
    stage: str = "analysis"
    answer: str = ""
    sources: list[SearchResult] = field(default_factory=list)
    quality: QualityCheckResult | None = None
    has_mock_search: bool = False
    follow_ups: list[str] = field(default_factory=list)


def normalize_error(exc: BaseException) -> str:
    """One user-facing line for an error raised anywhere in the pipeline."""
    detail = str(exc).strip()
    if isinstance(exc, HopSearchError):
        return detail or type(exc).__name__
    return f"Agent search failed: {detail}" if detail else "Agent search failed"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def step_events(step: int, total: int, task: Task, results: list[SearchResult]) -> list[SSEEvent]:
    """Events reported for one finished hop, in emission order."""
    return [
        streaming.progress(
            f"Step {step}/{total}: {task.description}",
            {"task": task.description, "resultsCount": len(results)},
        ),
        streaming.tool_call("web_search", {"query": task.search_query, "step": step, "total": total}),
        streaming.step_results(step, task, results),
        streaming.step_complete(step, f"Found {_plural(len(results), 'result')} for: {task.search_query}"),
    ]


class AgentOrchestrator:
    """Runs analyze -> plan -> search -> rank -> answer -> check as one event stream.

    ``run`` yields ``SSEEvent``s in a single total order. Nothing raises out of
    it: the first unhandled error becomes one ``error`` event and the stream
    ends there.
    """

    def __init__(
        self,
        model: str | None = None,
        *,
        analyzer: QueryAnalyzer | None = None,
        planner: TaskPlanner | None = None,
        strict_dependencies: bool | None = None,
    ):
        self.model = model
        self.analyzer = analyzer or QueryAnalyzer()
        self.planner = planner or TaskPlanner()
        self.strict_dependencies = strict_dependencies
        self.client = None

    def _answer_agent(self, answer_settings: AnswerSettings | None) -> AnswerAgent:
        agent = AnswerAgent(model=self.model, answer_settings=answer_settings)
        agent.client = self.client
        return agent

    async def _search_with_progress(
        self,
        query: str,
        analysis: QueryAnalysis,
        tasks: list[Task],
    ) -> AsyncGenerator[SSEEvent | MultiHopResult, None]:
        """Run the plan, yielding each hop's events as soon as the hop settles.

        The final item is the ``MultiHopResult``.
        """
        queue: asyncio.Queue[SSEEvent | None] = asyncio.Queue()

        def on_progress(step: int, total: int, task: Task, results: list[SearchResult]) -> None:
            for event in step_events(step, total, task, results):
                queue.put_nowait(event)

        search_task = asyncio.create_task(
            execute_multi_hop_search(
                query,
                analysis,
                on_progress,
                tasks=tasks,
                strict_dependencies=self.strict_dependencies,
            )
        )
        search_task.add_done_callback(lambda _: queue.put_nowait(None))
        try:
            while (event := await queue.get()) is not None:
                yield event
            yield await search_task
        finally:
            if not search_task.done():
                search_task.cancel()

    async def _pipeline(
        self,
        query: str,
        history: list[ChatMessage] | list[dict[str, Any]] | None,
        answer_settings: AnswerSettings | None,
        state: _RunState,
    ) -> AsyncGenerator[SSEEvent, None]:
        t0 = time.monotonic()
        for agent in (self.analyzer, self.planner):
            if agent.client is None:
                agent.client = self.client

        # 1. Analyze
        state.stage = "analysis"
        yield streaming.thinking("Analyzing query complexity...")
        outcome = await self.analyzer.analyze_detailed(query)
        analysis = outcome.analysis
        yield streaming.progress(
            "Query analyzed",
            {"complexity": analysis.complexity, "source": "heuristic" if outcome.is_fallback else "llm"},
        )

        # 2. Search
        if not analysis.needs_multi_step:
            yield streaming.progress("Using simple search mode")
            state.stage = "search"
            result = await execute_multi_hop_search(query, analysis)
            yield streaming.tool_call("web_search", {"query": query, "isMockSearch": result.has_mock_search})
        else:
            state.stage = "planning"
            yield streaming.thinking("Planning execution steps...")
            tasks = await self.planner.plan_tasks(query, analysis.suggested_steps)
            yield streaming.progress(
                f"Planned {_plural(len(tasks), 'search step')}",
                {"steps": [task.description for task in tasks]},
            )

            state.stage = "search"
            yield streaming.thinking("Executing search plan...")
            result = None
            async for item in self._search_with_progress(query, analysis, tasks):
                if isinstance(item, MultiHopResult):
                    result = item
                else:
                    yield item
            if result is None:
                raise RuntimeError("Multi-hop search finished without a result")

        # 3. Rank
        state.stage = "ranking"
        unique = dedupe_by_url(result.all_results)
        ranked = reranker.rerank_with_report(unique, query)
        sources = ranked.results
        has_mock_search = result.has_mock_search or ranked.mock_count > 0
        state.sources = sources
        state.has_mock_search = has_mock_search

        validation = reranker.validate_results(sources)
        if not validation.is_valid:
            logger.warning(f"Search results quality issues for '{query[:80]}': {validation.issues}")
        log_service.log_pipeline_step(
            "ranking",
            "completed",
            {
                "raw": len(result.all_results),
                "unique": len(unique),
                "kept": len(sources),
                "mock": ranked.mock_count,
                "low_quality": ranked.dropped_count,
            },
        )

        if not analysis.needs_multi_step or has_mock_search:
            yield streaming.mock_search_detected(has_mock_search)
        yield streaming.sources_update(sources)

        # 4. Context
        if sources:
            context = format_search_context(sources)
            plan_context = format_plan_context(result.execution_plan)
            if plan_context:
                context = f"{context}\n\n{plan_context}"
            multi_step = analysis.needs_multi_step
        else:
            yield streaming.thinking("No search results found. Generating response from knowledge base...")
            context = render_prompt("answer.no_results_context", query=query)
            multi_step = False

        # 5. Generate
        state.stage = "generation"
        yield streaming.thinking("Synthesizing answer from all sources..." if multi_step else "Synthesizing answer...")
        agent = self._answer_agent(answer_settings)
        answer_start = time.monotonic()
        async for chunk in agent.stream_answer(query, context=context, history=history, multi_step=multi_step):
            yield streaming.answer_token(chunk)
        state.answer = agent.final_text
        yield streaming.answer_complete(
            agent.final_text,
            tokens_used=agent.tokens_used,
            runtime_ms=int((time.monotonic() - answer_start) * 1000),
        )

        # 6. Check
        state.stage = "quality"
        quality = check_response_quality(agent.final_text, sources)
        state.quality = quality
        if quality.issues:
            logger.info(f"Answer quality {quality.score}/100 for '{query[:80]}': {quality.issues}")
        yield streaming.quality_checked(quality)

        # 7. Follow-ups
        if settings.follow_up_suggestions_enabled and agent.final_text:
            state.stage = "follow_ups"
            questions = await agent.suggest_follow_ups(query, agent.final_text)
            state.follow_ups = questions
            if questions:
                yield streaming.follow_ups(questions)

        log_service.log_pipeline_step(
            "agent_search",
            "completed",
            {
                "needs_multi_step": analysis.needs_multi_step,
                "sources": len(sources),
                "quality_score": quality.score,
                "duration_ms": int((time.monotonic() - t0) * 1000),
            },
        )

    async def _guarded(
        self,
        query: str,
        history: list[ChatMessage] | list[dict[str, Any]] | None,
        answer_settings: AnswerSettings | None,
        state: _RunState,
    ) -> AsyncGenerator[SSEEvent, None]:
        try:
            async for event in self._pipeline(query, history, answer_settings, state):
                yield event
        except Exception as e:
            logger.exception(f"Agent search failed during {state.stage} for '{query[:80]}'")
            log_service.log_pipeline_step("agent_search", "failed", {"stage": state.stage, "error": str(e)})
            yield streaming.error(normalize_error(e), stage=state.stage)

    async def run(
        self,
        query: str,
        history: list[ChatMessage] | list[dict[str, Any]] | None = None,
        answer_settings: AnswerSettings | None = None,
    ) -> AsyncGenerator[SSEEvent, None]:
        async for event in self._guarded(query, history, answer_settings, _RunState()):
            yield event

    async def run_to_completion(
        self,
        query: str,
        history: list[ChatMessage] | list[dict[str, Any]] | None = None,
        answer_settings: AnswerSettings | None = None,
    ) -> AgentRunResult:
        """Convenience: run the pipeline collecting every event."""
        state = _RunState()
        events: list[SSEEvent] = []
        async for event in self._guarded(query, history, answer_settings, state):
            events.append(event)

        error = next((e.data.get("message") for e in events if e.event == EventType.ERROR), None)
        return AgentRunResult(
            answer=state.answer,
            sources=state.sources,
            quality=state.quality,
            has_mock_search=state.has_mock_search,
            follow_ups=state.follow_ups,
            error=error,
            events=events,
        )
