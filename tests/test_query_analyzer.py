from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from hopsearch.agents.query_analyzer import QueryAnalyzer, heuristic_analysis, should_use_agent_mode
from hopsearch.config import settings
from hopsearch.llm_client import MessageResponse, TextBlock, Usage
from hopsearch.models.analysis import AnalysisFallback, AnalysisOk


def _reply(text: str) -> MessageResponse:
    return MessageResponse(content=[TextBlock(type="text", text=text)], usage=Usage(12, 30))


def _analyzer(create: AsyncMock) -> QueryAnalyzer:
    analyzer = QueryAnalyzer(model="test-model")
    analyzer.client = SimpleNamespace(messages=SimpleNamespace(create=create))
    return analyzer


@pytest.mark.asyncio
async def test_json_reply_wrapped_in_prose_is_decoded():
    create = AsyncMock(
        return_value=_reply(
            'Sure! Here is the analysis: {"needsMultiStep": true, "complexity": "complex", '
            '"suggestedSteps": ["Find React adoption", "Find Vue adoption"], '
            '"reasoning": "two {frameworks}"} Hope this helps.'
        )
    )

    outcome = await _analyzer(create).analyze_detailed("Compare React and Vue adoption")

    assert isinstance(outcome, AnalysisOk)
    assert not outcome.is_fallback
    assert outcome.analysis.needs_multi_step
    assert outcome.analysis.complexity == "complex"
    assert outcome.analysis.suggested_steps == ["Find React adoption", "Find Vue adoption"]
    assert outcome.analysis.reasoning == "two {frameworks}"
    assert create.await_args.kwargs["model"] == "test-model"


@pytest.mark.asyncio
async def test_failed_call_falls_back_to_comparison_marker():
    create = AsyncMock(side_effect=RuntimeError("gateway unavailable"))

    outcome = await _analyzer(create).analyze_detailed("Compare React vs Vue")

    assert isinstance(outcome, AnalysisFallback)
    assert outcome.analysis.needs_multi_step is True
    assert outcome.analysis.complexity == "moderate"
    assert "gateway unavailable" in outcome.reason


@pytest.mark.asyncio
async def test_reply_without_json_falls_back():
    create = AsyncMock(return_value=_reply("I think this query is fairly simple."))

    outcome = await _analyzer(create).analyze_detailed("What is the capital of France")

    assert isinstance(outcome, AnalysisFallback)
    assert outcome.reason.startswith("no usable JSON")
    assert outcome.analysis.needs_multi_step is False
    assert outcome.analysis.complexity == "simple"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [
        '{"needsMultiStep": "yes", "complexity": "simple"}',
        '{"needsMultiStep": false, "complexity": "hard"}',
        '{"complexity": "simple"}',
    ],
)
async def test_schema_violations_fall_back(reply):
    outcome = await _analyzer(AsyncMock(return_value=_reply(reply))).analyze_detailed("rust ownership")

    assert isinstance(outcome, AnalysisFallback)
    assert outcome.reason.startswith("reply did not match schema")


@pytest.mark.asyncio
async def test_deeply_nested_reply_falls_back():
    nested = '{"needsMultiStep": ' + "[" * 5000 + "]" * 5000 + "}"

    outcome = await _analyzer(AsyncMock(return_value=_reply(nested))).analyze_detailed("rust ownership")

    assert isinstance(outcome, AnalysisFallback)
    assert outcome.reason == "reply nested too deeply to decode"
    assert outcome.analysis.needs_multi_step is False


@pytest.mark.asyncio
async def test_slow_reply_times_out_to_fallback():
    async def slow_create(**kwargs):
        await asyncio.sleep(1)
        return _reply('{"needsMultiStep": false, "complexity": "simple"}')

    with patch.object(settings, "analysis_timeout_seconds", 0.01):
        outcome = await _analyzer(AsyncMock(side_effect=slow_create)).analyze_detailed("first boil, then drain")

    assert isinstance(outcome, AnalysisFallback)
    assert outcome.reason.startswith("analysis timed out")
    assert outcome.analysis.needs_multi_step


@pytest.mark.asyncio
async def test_single_search_verdict_drops_suggested_steps():
    create = AsyncMock(
        return_value=_reply('{"needsMultiStep": false, "complexity": "simple", "suggestedSteps": ["a", "b"]}')
    )

    analysis = await _analyzer(create).analyze("rust ownership")

    assert analysis.needs_multi_step is False
    assert analysis.suggested_steps == []


@pytest.mark.parametrize(
    ("query", "needs_multi_step", "reasoning"),
    [
        ("Compare React vs Vue", True, "Query contains multiple topics"),
        ("difference  between tea and coffee", True, "Query contains multiple topics"),
        ("first boil water then add pasta", True, "Query describes a sequential process"),
        ("What are the steps to renew a passport", True, "Query describes a sequential process"),
        ("How processes are scheduled on Linux", True, "Query describes a sequential process"),
        ("Electric cars compared to hybrids", True, "Query contains multiple topics"),
        ("What is the capital of France", False, "Simple query"),
        ("android versioning history", False, "Simple query"),
        ("", False, "Simple query"),
    ],
)
def test_heuristic_analysis(query, needs_multi_step, reasoning):
    analysis = heuristic_analysis(query)

    assert analysis.needs_multi_step is needs_multi_step
    assert analysis.complexity == ("moderate" if needs_multi_step else "simple")
    assert analysis.complexity in {"simple", "moderate", "complex"}
    assert analysis.reasoning == reasoning
    assert analysis.suggested_steps == []


def test_should_use_agent_mode():
    assert should_use_agent_mode("How to deploy FastAPI step by step")
    assert should_use_agent_mode("python vs go for services")
    assert not should_use_agent_mode("weather in Lisbon")
