"""Tunable heuristic tables for analysis, multi-hop search, re-ranking and response checks.

Values are loaded from ``data/heuristics.json`` (or ``HEURISTICS_PATH``). Every
field carries a default, so tests can build a ``Heuristics`` with a single
threshold overridden.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from hopsearch.config import settings
from hopsearch.exceptions import ConfigurationError

DEFAULT_HEURISTICS_PATH = Path(__file__).resolve().parents[1] / "data" / "heuristics.json"


class AnalyzerRules(BaseModel):
    model_config = ConfigDict(extra="forbid")

    comparison_markers: list[str] = [
        "and",
        "or",
        "compare",
        "versus",
        "vs",
        "difference between",
    ]
    sequential_markers: list[str] = ["first", "then", "after", "before", "step", "process"]


class MultiHopRules(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_query_chars: int = 100
    min_cut_offset: int = 50
    retry_min_query_chars: int = 20
    retry_word_min_chars: int = 3
    retry_max_words: int = 4
    final_results_limit: int = 10


class DomainScores(BaseModel):
    blacklisted: int = -5
    high_credibility: int = 5
    trusted: int = 3
    default: int = 1


class UrlScores(BaseModel):
    placeholder: int = -3
    normal: int = 2


class TitleScores(BaseModel):
    keyword_match: int = 2
    exact_match: int = -1
    exact_match_long_query: int = 0


class RelevanceScores(BaseModel):
    title_hit: int = 2
    snippet_hit: int = 1
    trusted_domain: int = 2


class RerankerRules(BaseModel):
    model_config = ConfigDict(extra="forbid")

    domain_blacklist: list[str] = ["example.com", "test.com", "localhost", "127.0.0.1"]
    trusted_domains: list[str] = [
        "wikipedia.org",
        "edu",
        "gov",
        "nature.com",
        "stackoverflow.com",
        "github.com",
        "reddit.com",
        "medium.com",
        "investopedia.com",
        "forbes.com",
        "techcrunch.com",
        "arstechnica.com",
    ]
    high_credibility_suffixes: list[str] = [".edu", ".gov"]
    placeholder_domains: list[str] = ["example.com", "test.com"]
    placeholder_url_markers: list[str] = ["example", "test"]
    reference_domains: list[str] = ["wikipedia.org"]
    mock_title_templates: list[str] = [
        "{query}",
        "{query} - wikipedia",
        "understanding {query}",
    ]
    long_query_chars: int = 100
    verbose_query_chars: int = 150
    verbose_query_prefix_words: int = 10
    slug_pattern_words: int = 3
    min_snippet_chars: int = 30
    snippet_chars_per_point: int = 50
    max_snippet_points: int = 3
    domain_scores: DomainScores = Field(default_factory=DomainScores)
    url_scores: UrlScores = Field(default_factory=UrlScores)
    short_snippet_penalty: int = -2
    title_scores: TitleScores = Field(default_factory=TitleScores)
    relevance_scores: RelevanceScores = Field(default_factory=RelevanceScores)
    quality_weight: float = 0.6
    relevance_weight: float = 0.4
    max_results: int = 7
    evidence_fallback_chars: int = 200


class ResponseQualityRules(BaseModel):
    model_config = ConfigDict(extra="forbid")

    missing_citations_penalty: int = 40
    invalid_citation_penalty: int = 20
    min_coverage: int = 50
    low_coverage_penalty: int = 15
    partial_validity_penalty: int = 10
    short_response_chars: int = 100
    short_response_penalty: int = 10
    long_response_chars: int = 1000
    long_uncited_penalty: int = 20
    min_valid_score: int = 70


class Heuristics(BaseModel):
    model_config = ConfigDict(extra="forbid")

    analyzer: AnalyzerRules = Field(default_factory=AnalyzerRules)
    multihop: MultiHopRules = Field(default_factory=MultiHopRules)
    reranker: RerankerRules = Field(default_factory=RerankerRules)
    response_quality: ResponseQualityRules = Field(default_factory=ResponseQualityRules)


_cache: Heuristics | None = None
_cache_key: tuple[str, int] | None = None


def _resolve_path() -> Path:
    configured = str(settings.heuristics_path or "").strip()
    return Path(configured) if configured else DEFAULT_HEURISTICS_PATH


def load_heuristics(path: Path | str) -> Heuristics:
    """Parse a heuristics file without touching the module cache."""
    source = Path(path)
    try:
        payload: Any = json.loads(source.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Heuristics file not found: {source}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Heuristics file is not valid JSON: {source}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError("Heuristics file must contain a JSON object.")
    try:
        return Heuristics.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid heuristics in {source}: {exc}") from exc


def get_heuristics() -> Heuristics:
    """Return the active heuristics, reloading when the file changes on disk."""
    global _cache, _cache_key
    path = _resolve_path()
    key = (str(path), path.stat().st_mtime_ns if path.exists() else -1)
    if _cache is not None and _cache_key == key:
        return _cache

    _cache = load_heuristics(path)
    _cache_key = key
    return _cache


def clear_heuristics_cache() -> None:
    global _cache, _cache_key
    _cache = None
    _cache_key = None
