"""Deterministic placeholder results used when no real search provider is available.

These are intentionally recognizable (reference-site title, ``example.com``
slugs) so the re-ranker's synthetic-result detection can filter them out.
"""
from __future__ import annotations

import re
from urllib.parse import quote

from hopsearch.models.search import SearchResponse, SearchResult
from hopsearch.tools.web_utils import favicon_url

_PROGRAMMING_KEYWORDS = ("programming", "code", "javascript", "react", "typescript")


def _slug(query: str, sep: str) -> str:
    return quote(re.sub(r"\s+", sep, query.strip()), safe="")


def search(query: str, *, max_results: int = 5) -> SearchResponse:
    lowered = query.lower()
    results = [
        SearchResult(
            id="mock-1",
            title=f"{query} - Wikipedia",
            url=f"https://en.wikipedia.org/wiki/{_slug(query, '_')}",
            snippet=(
                f"A comprehensive overview of {query}. This article covers the key concepts, "
                "history, and modern applications..."
            ),
            domain="en.wikipedia.org",
            favicon=favicon_url("en.wikipedia.org"),
        ),
        SearchResult(
            id="mock-2",
            title=f"Understanding {query} | A Complete Guide",
            url=f"https://www.example.com/guide/{_slug(lowered, '-')}",
            snippet=(
                f"Learn everything you need to know about {query}. Our comprehensive guide "
                "covers fundamentals to advanced topics..."
            ),
            domain="example.com",
            favicon=favicon_url("example.com"),
        ),
        SearchResult(
            id="mock-3",
            title=f"{query} Explained Simply - Medium",
            url=f"https://medium.com/topic/{_slug(lowered, '-')}",
            snippet=(
                f"Breaking down {query} into simple, understandable concepts. Perfect for "
                "beginners looking to understand the basics..."
            ),
            domain="medium.com",
            favicon=favicon_url("medium.com"),
        ),
    ]

    if any(keyword in lowered for keyword in _PROGRAMMING_KEYWORDS):
        results.append(
            SearchResult(
                id="mock-4",
                title=f"{query} - Stack Overflow",
                url=f"https://stackoverflow.com/questions/tagged/{_slug(lowered, '-')}",
                snippet=(
                    f"Community discussions and solutions related to {query}. Find answers "
                    "from experienced developers..."
                ),
                domain="stackoverflow.com",
                favicon=favicon_url("stackoverflow.com"),
            )
        )

    return SearchResponse(
        results=results[: max(min(max_results, 5), 0)],
        query=query,
        engine="mock",
        search_time_ms=50,
        is_mock_search=True,
    )
