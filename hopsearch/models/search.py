from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from hopsearch.models.plan import Task


@dataclass
class SearchResult:
    """Normalized web search result."""
    id: str
    title: str
    url: str
    snippet: str
    domain: str
    favicon: str | None = None
    published_date: str | None = None
    # Set by the re-ranker
    evidence: str | None = None
    relevance_score: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON shape consumed by clients (camelCase keys, unset fields omitted)."""
        payload: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "snippet": self.snippet,
            "domain": self.domain,
        }
        optional = {
            "favicon": self.favicon,
            "publishedDate": self.published_date,
            "evidence": self.evidence,
            "relevanceScore": self.relevance_score,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload


@dataclass
class SearchResponse:
    results: list[SearchResult]
    query: str
    engine: str
    search_time_ms: int | None = None
    is_mock_search: bool = False
    fallback_from: str | None = None
    fallback_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "query": self.query,
            "engine": self.engine,
            "searchTime": self.search_time_ms,
            "isMockSearch": self.is_mock_search,
        }


@dataclass(frozen=True)
class AnalysisSummary:
    needs_multi_step: bool
    complexity: str


@dataclass
class MultiHopResult:
    final_results: list[SearchResult]
    all_results: list[SearchResult]
    execution_plan: list[Task]
    analysis: AnalysisSummary
    has_mock_search: bool = False
    task_results: dict[str, list[SearchResult]] = field(default_factory=dict)


@dataclass
class RerankOutcome:
    results: list[SearchResult]
    mock_count: int = 0
    dropped_count: int = 0


@dataclass
class ResultsValidation:
    is_valid: bool
    issues: list[str] = field(default_factory=list)


def results_to_dicts(results: list[SearchResult]) -> list[dict[str, Any]]:
    return [r.to_dict() for r in results]

