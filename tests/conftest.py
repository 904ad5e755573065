from __future__ import annotations

import pytest

from hopsearch.models.search import SearchResponse, SearchResult
from hopsearch.services.heuristics import Heuristics
from hopsearch.services.telemetry import telemetry


def make_result(
    idx: int = 0,
    *,
    title: str = "Result title",
    url: str | None = None,
    snippet: str = "",
    domain: str = "news.site.org",
) -> SearchResult:
    return SearchResult(
        id=f"r-{idx}",
        title=title,
        url=url or f"https://{domain}/article-{idx}",
        snippet=snippet,
        domain=domain,
    )


@pytest.fixture
def heuristics() -> Heuristics:
    return Heuristics()


@pytest.fixture(autouse=True)
def _reset_telemetry():
    telemetry.clear()
    yield
    telemetry.clear()


@pytest.fixture
def result_factory():
    return make_result


def make_response(results: list[SearchResult], query: str = "query", *, is_mock: bool = False) -> SearchResponse:
    return SearchResponse(
        results=results,
        query=query,
        engine="mock" if is_mock else "brave",
        search_time_ms=5,
        is_mock_search=is_mock,
    )


@pytest.fixture
def response_factory():
    return make_response
