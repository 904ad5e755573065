from __future__ import annotations

from typing import Any

import httpx

from hopsearch.config import settings
from hopsearch.models.search import SearchResult
from hopsearch.tools import web_utils

SERPAPI_URL = "https://serpapi.com/search.json"


async def search(query: str, *, max_results: int = 10) -> list[SearchResult]:
    """Execute a Google search through SerpAPI and normalize organic results."""
    if not settings.serpapi_api_key:
        raise RuntimeError("SERPAPI_API_KEY is not configured")

    params: dict[str, Any] = {
        "q": query,
        "api_key": settings.serpapi_api_key,
        "engine": "google",
        "num": max_results,
    }

    async with httpx.AsyncClient(timeout=settings.search_timeout_seconds) as client:
        response = await client.get(SERPAPI_URL, params=params)
        response.raise_for_status()
        payload = response.json()

    results: list[SearchResult] = []
    for idx, item in enumerate(payload.get("organic_results", []) or []):
        url = item.get("link", "") or ""
        domain = web_utils.extract_domain(url)
        results.append(
            SearchResult(
                id=f"serp-{idx}",
                title=item.get("title", "") or "",
                url=url,
                snippet=item.get("snippet", "") or "",
                domain=domain,
                favicon=web_utils.favicon_url(domain),
                published_date=item.get("date"),
            )
        )
    return results[:max_results]
