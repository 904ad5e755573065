from __future__ import annotations

import asyncio
import json
import re
import time
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from hopsearch.config import settings
from hopsearch.llm_client import client as llm_client, extract_response_text, get_planner_model
from hopsearch.models.analysis import (
    AnalysisFallback,
    AnalysisOk,
    AnalysisOutcome,
    Complexity,
    QueryAnalysis,
)
from hopsearch.services import logger as log_service
from hopsearch.services.heuristics import Heuristics, get_heuristics
from hopsearch.services.json_extract import extract_json_object
from hopsearch.services.prompt_store import render_prompt

_WHOLE_WORD_MAX_CHARS = 3

_AGENT_MODE_PATTERNS = [
    re.compile(r"compare|versus|\bvs\b|difference between", re.IGNORECASE),
    re.compile(r"how to|step by step|process|guide", re.IGNORECASE),
    re.compile(r"best.*and.*best", re.IGNORECASE),
    re.compile(r"multiple|several|various|different", re.IGNORECASE),
]


class _AnalysisPayload(BaseModel):
    """Wire shape of the analyzer reply. Types are checked strictly."""

    model_config = ConfigDict(strict=True, populate_by_name=True, extra="ignore")

    needs_multi_step: bool = Field(alias="needsMultiStep")
    complexity: Complexity
    suggested_steps: list[str] = Field(default_factory=list, alias="suggestedSteps")
    reasoning: str = ""


def _marker_pattern(markers: list[str]) -> re.Pattern[str] | None:
    """Match markers at the start of a word.

    Short markers ("and", "or", "vs") must also end the word, so "versioning"
    does not count as "vs". Longer ones keep their inflections ("steps").
    """
    parts = []
    for marker in markers:
        words = marker.split()
        if not words:
            continue
        body = r"\s+".join(re.escape(word) for word in words)
        if len(words) == 1 and len(words[0]) <= _WHOLE_WORD_MAX_CHARS:
            body += r"\b"
        parts.append(body)
    if not parts:
        return None
    return re.compile(r"\b(?:" + "|".join(parts) + ")", re.IGNORECASE)


def heuristic_analysis(query: str, heuristics: Heuristics | None = None) -> QueryAnalysis:
    """Keyword classifier used when the model cannot be asked or understood.

    Never raises.
    """
    rules = (heuristics or get_heuristics()).analyzer
    comparison = _marker_pattern(rules.comparison_markers)
    sequential = _marker_pattern(rules.sequential_markers)
    has_multiple_topics = bool(comparison and comparison.search(query))
    has_sequence = bool(sequential and sequential.search(query))

    if has_multiple_topics:
        reasoning = "Query contains multiple topics"
    elif has_sequence:
        reasoning = "Query describes a sequential process"
    else:
        reasoning = "Simple query"

    needs_multi_step = has_multiple_topics or has_sequence
    return QueryAnalysis(
        needs_multi_step=needs_multi_step,
        complexity="moderate" if needs_multi_step else "simple",
        suggested_steps=[],
        reasoning=reasoning,
    )


def should_use_agent_mode(query: str) -> bool:
    """Cheap pre-check for queries that will likely need several searches."""
    return any(pattern.search(query) for pattern in _AGENT_MODE_PATTERNS)


class QueryAnalyzer:
    """Decide whether a query needs one search or a multi-step plan."""

    name = "query_analyzer"

    def __init__(self, model: str | None = None, heuristics: Heuristics | None = None):
        self.model = model or get_planner_model()
        self.heuristics = heuristics
        self.client = None

    async def _ask_model(self, query: str) -> str:
        active_client = self.client or llm_client()
        t0 = time.monotonic()
        try:
            response = await asyncio.wait_for(
                active_client.messages.create(
                    model=self.model,
                    max_tokens=1024,
                    system=render_prompt("query_analyzer.system_prompt"),
                    messages=[{"role": "user", "content": render_prompt("query_analyzer.user_prompt", query=query)}],
                ),
                timeout=settings.analysis_timeout_seconds,
            )
        except Exception as e:
            log_service.log_llm_call(
                model=self.model,
                caller=self.name,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="failed",
                error=str(e) or type(e).__name__,
            )
            raise

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=self.model,
            caller=self.name,
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return extract_response_text(response)

    @staticmethod
    def _parse(text: str) -> QueryAnalysis:
        payload: dict[str, Any] = extract_json_object(text)
        decoded = _AnalysisPayload.model_validate(payload)
        return QueryAnalysis(
            needs_multi_step=decoded.needs_multi_step,
            complexity=decoded.complexity,
            suggested_steps=[step.strip() for step in decoded.suggested_steps if step.strip()],
            reasoning=decoded.reasoning,
        )

    def _fallback(self, query: str, reason: str) -> AnalysisFallback:
        logger.warning(f"Query analysis fell back to heuristics ({reason}) for '{query[:80]}'")
        return AnalysisFallback(analysis=heuristic_analysis(query, self.heuristics), reason=reason)

    async def analyze_detailed(self, query: str) -> AnalysisOutcome:
        """Classify a query, reporting whether the model or the heuristic answered."""
        try:
            text = await self._ask_model(query)
        except asyncio.TimeoutError:
            return self._fallback(query, f"analysis timed out after {settings.analysis_timeout_seconds}s")
        except Exception as e:
            return self._fallback(query, f"analysis call failed: {e}")

        try:
            analysis = self._parse(text)
        except json.JSONDecodeError as e:
            return self._fallback(query, f"no usable JSON in reply: {e.msg}")
        except ValidationError as e:
            return self._fallback(query, f"reply did not match schema: {e.error_count()} errors")
        except RecursionError:
            return self._fallback(query, "reply nested too deeply to decode")

        return AnalysisOk(analysis=analysis)

    async def analyze(self, query: str) -> QueryAnalysis:
        outcome = await self.analyze_detailed(query)
        return outcome.analysis
