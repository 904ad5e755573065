from __future__ import annotations

import json

import pytest

from hopsearch.services.json_extract import extract_json_array, extract_json_object, find_balanced_span


def test_balanced_span_ignores_braces_inside_strings():
    text = 'noise {"a": "x}y", "b": {"c": "\\"}"}} trailing }'

    assert find_balanced_span(text) == '{"a": "x}y", "b": {"c": "\\"}"}}'


def test_balanced_span_none_when_unclosed():
    assert find_balanced_span('{"a": 1') is None
    assert find_balanced_span("no braces at all") is None


def test_balanced_span_skips_unclosed_brace_before_json():
    text = 'Draft {notes\n{"needsMultiStep": true, "complexity": "moderate"}'

    assert find_balanced_span(text) == '{"needsMultiStep": true, "complexity": "moderate"}'
    assert extract_json_object(text) == {"needsMultiStep": True, "complexity": "moderate"}


def test_object_extracted_from_prose_and_fences():
    assert extract_json_object('Result:\n{"ok": true}\nThanks') == {"ok": True}
    assert extract_json_object('```json\n{"ok": 1}\n```') == {"ok": 1}


def test_first_object_wins():
    assert extract_json_object('{"first": 1} and {"second": 2}') == {"first": 1}


def test_array_extraction():
    assert extract_json_array('Suggestions: ["a?", "b]?"] done') == ["a?", "b]?"]


@pytest.mark.parametrize("raw", ["", "plain words", "{not json}", '{"a": 1'])
def test_object_failures_raise_decode_error(raw):
    with pytest.raises(json.JSONDecodeError):
        extract_json_object(raw)


def test_array_failure_raises_decode_error():
    with pytest.raises(json.JSONDecodeError):
        extract_json_array('{"questions": "none"}')
