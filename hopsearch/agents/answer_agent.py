from __future__ import annotations

import time
from typing import Any, AsyncGenerator

from loguru import logger

from hopsearch.exceptions import GenerationError
from hopsearch.llm_client import Usage, client as llm_client, extract_response_text, get_model
from hopsearch.models.plan import Task
from hopsearch.models.schemas import AnswerSettings, ChatMessage
from hopsearch.models.search import SearchResult
from hopsearch.services import logger as log_service
from hopsearch.services.json_extract import extract_json_array
from hopsearch.services.prompt_store import render_prompt
from hopsearch.services.telemetry import telemetry


def build_system_prompt(answer_settings: AnswerSettings | None = None) -> str:
    opts = answer_settings or AnswerSettings()
    return render_prompt(
        "answer.system_prompt",
        depth_instruction=render_prompt(f"answer.depth.{opts.depth}"),
        tone_instruction=render_prompt(f"answer.tone.{opts.tone}"),
        tone=opts.tone,
        citation_instruction=render_prompt(f"answer.citations.{opts.citation_strictness}"),
    )


def format_search_context(results: list[SearchResult]) -> str:
    """Number sources ``[1]..[n]`` so the model's citations line up with them."""
    if not results:
        return ""
    blocks: list[str] = []
    for index, result in enumerate(results, start=1):
        lines = [f"[{index}] {result.title}", f"URL: {result.url}", f"Snippet: {result.snippet}"]
        evidence = result.evidence or result.snippet
        if evidence != result.snippet:
            lines.append(f"Evidence: {evidence}")
        blocks.append("\n".join(lines))
    return "Web Search Results:\n\n" + "\n\n".join(blocks)


def format_plan_context(plan: list[Task]) -> str:
    """Execution plan appendix; empty unless more than one task ran."""
    if len(plan) <= 1:
        return ""
    steps = "\n".join(f"{i}. {task.description}: {task.search_query}" for i, task in enumerate(plan, start=1))
    return f"Execution Plan:\n{steps}"


def history_to_messages(history: list[ChatMessage] | list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    for item in history or []:
        if isinstance(item, ChatMessage):
            role, content = item.role, item.content
        else:
            role, content = item.get("role", "user"), item.get("content", "")
        if not content:
            continue
        messages.append({"role": "user" if role == "user" else "assistant", "content": str(content)})
    return messages


class AnswerAgent:
    """Streams the final cited answer and suggests follow-up questions."""

    name = "answer"

    def __init__(self, model: str | None = None, answer_settings: AnswerSettings | None = None):
        self.model = model or get_model()
        self.answer_settings = answer_settings or AnswerSettings()
        self.client = None
        self._final_text = ""
        self._usage = Usage()

    @property
    def final_text(self) -> str:
        return self._final_text

    @property
    def tokens_used(self) -> int:
        return self._usage.input_tokens + self._usage.output_tokens

    def build_user_message(self, query: str, context: str, *, multi_step: bool = False) -> str:
        if not context:
            return query
        if multi_step:
            return f"{context}\n\n" + render_prompt("answer.multi_step_instruction", query=query)
        return render_prompt("answer.user_message", context=context, query=query)

    async def stream_answer(
        self,
        query: str,
        *,
        context: str = "",
        history: list[ChatMessage] | list[dict[str, Any]] | None = None,
        multi_step: bool = False,
    ) -> AsyncGenerator[str, None]:
        """Yield answer text chunks as they arrive.

        ``final_text`` and ``tokens_used`` are set once the stream ends. Any
        failure from the generation service surfaces as ``GenerationError``.
        """
        messages = history_to_messages(history)
        messages.append({"role": "user", "content": self.build_user_message(query, context, multi_step=multi_step)})

        telemetry.record("llm_started", query=query, metadata={"hasSearchContext": bool(context)})
        t0 = time.monotonic()
        parts: list[str] = []
        try:
            active_client = self.client or llm_client()
            async with active_client.messages.stream(
                model=self.model,
                max_tokens=8192,
                system=build_system_prompt(self.answer_settings),
                messages=messages,
            ) as stream:
                async for text in stream.text_stream:
                    parts.append(text)
                    yield text
            final_msg = await stream.get_final_message()
        except Exception as e:
            duration_ms = int((time.monotonic() - t0) * 1000)
            log_service.log_llm_call(
                model=self.model,
                caller=self.name,
                duration_ms=duration_ms,
                status="failed",
                error=str(e),
            )
            telemetry.record("llm_failed", query=query, duration_ms=duration_ms, error=str(e))
            raise GenerationError(f"Answer generation failed: {e}") from e

        duration_ms = int((time.monotonic() - t0) * 1000)
        self._usage = getattr(final_msg, "usage", None) or Usage()
        self._final_text = "".join(parts)
        log_service.log_llm_call(
            model=self.model,
            caller=self.name,
            input_tokens=self._usage.input_tokens,
            output_tokens=self._usage.output_tokens,
            duration_ms=duration_ms,
        )
        telemetry.record(
            "llm_completed",
            query=query,
            duration_ms=duration_ms,
            metadata={"hasSearchContext": bool(context)},
        )

    async def suggest_follow_ups(self, query: str, answer: str) -> list[str]:
        """Three short follow-up questions, or ``[]`` if anything goes wrong."""
        prompt = render_prompt("follow_ups.prompt", query=query, answer_preview=answer[:500])
        try:
            active_client = self.client or llm_client()
            response = await active_client.messages.create(
                model=self.model,
                max_tokens=512,
                system="",
                messages=[{"role": "user", "content": prompt}],
            )
            suggestions = extract_json_array(extract_response_text(response))
        except Exception as e:
            logger.warning(f"Follow-up suggestions failed: {e}")
            return []
        return [s.strip() for s in suggestions if isinstance(s, str) and s.strip()][:3]
