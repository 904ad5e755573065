from __future__ import annotations

import pytest

from hopsearch.services.prompt_store import render_prompt


def test_list_prompts_are_joined_and_rendered():
    rendered = render_prompt("query_analyzer.user_prompt", query="rust vs go")

    assert 'Query: "rust vs go"' in rendered
    assert "\n" in rendered
    assert '"needsMultiStep": boolean' in rendered


def test_string_prompt_renders():
    rendered = render_prompt("answer.no_results_context", query="zig comptime")

    assert rendered.startswith('No web search results were found for the query: "zig comptime"')


def test_unknown_key_raises():
    with pytest.raises(KeyError, match="Prompt key not found"):
        render_prompt("answer.missing")


def test_missing_value_names_the_placeholder():
    with pytest.raises(KeyError, match="Missing template value 'query'"):
        render_prompt("task_planner.user_prompt", max_tasks=3)


def test_non_leaf_key_is_rejected():
    with pytest.raises(TypeError):
        render_prompt("answer.tone")
