from __future__ import annotations

import json
import os
from unittest.mock import patch

import pytest

from hopsearch.config import settings
from hopsearch.exceptions import ConfigurationError
from hopsearch.services import heuristics as heuristics_module
from hopsearch.services.heuristics import (
    DEFAULT_HEURISTICS_PATH,
    Heuristics,
    clear_heuristics_cache,
    get_heuristics,
    load_heuristics,
)


@pytest.fixture(autouse=True)
def _fresh_cache():
    clear_heuristics_cache()
    yield
    clear_heuristics_cache()


def test_bundled_file_matches_defaults():
    assert load_heuristics(DEFAULT_HEURISTICS_PATH) == Heuristics()


def test_partial_file_keeps_other_defaults(tmp_path):
    path = tmp_path / "heuristics.json"
    path.write_text(json.dumps({"reranker": {"max_results": 3}}), encoding="utf-8")

    loaded = load_heuristics(path)

    assert loaded.reranker.max_results == 3
    assert loaded.reranker.quality_weight == 0.6
    assert loaded.multihop.final_results_limit == 10


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("{not json", "not valid JSON"),
        ("[1, 2]", "must contain a JSON object"),
        ('{"reranker": {"max_resluts": 3}}', "Invalid heuristics"),
    ],
)
def test_bad_files_raise_configuration_error(tmp_path, content, message):
    path = tmp_path / "heuristics.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError, match=message):
        load_heuristics(path)


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_heuristics(tmp_path / "absent.json")


def test_get_heuristics_reloads_when_file_changes(tmp_path):
    path = tmp_path / "heuristics.json"
    path.write_text(json.dumps({"reranker": {"max_results": 4}}), encoding="utf-8")

    with patch.object(settings, "heuristics_path", str(path)):
        first = get_heuristics()
        assert get_heuristics() is first
        assert first.reranker.max_results == 4

        path.write_text(json.dumps({"reranker": {"max_results": 5}}), encoding="utf-8")
        stat = path.stat()
        os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))

        assert get_heuristics().reranker.max_results == 5


def test_default_path_used_when_unset():
    with patch.object(settings, "heuristics_path", ""):
        assert heuristics_module._resolve_path() == DEFAULT_HEURISTICS_PATH
