from __future__ import annotations

from typing import Any

import httpx

from hopsearch.config import settings
from hopsearch.models.search import SearchResult
from hopsearch.tools import web_utils

BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"


def _parse_results(payload: dict[str, Any]) -> list[SearchResult]:
    raw_results = (payload.get("web") or {}).get("results", []) or []
    mapped: list[SearchResult] = []
    for idx, item in enumerate(raw_results):
        url = item.get("url", "") or ""
        snippets = item.get("extra_snippets", []) or []
        description = item.get("description", "") or ""
        domain = web_utils.extract_domain(url)
        mapped.append(
            SearchResult(
                id=f"brave-{idx}",
                title=item.get("title", "") or "",
                url=url,
                snippet=description.strip() or " ".join(snippets).strip(),
                domain=domain,
                favicon=web_utils.favicon_url(domain),
                published_date=item.get("page_age"),
            )
        )
    return mapped


async def search(query: str, *, max_results: int = 10) -> list[SearchResult]:
    """Execute a Brave web search and normalize results."""
    if not settings.brave_api_key:
        raise RuntimeError("BRAVE_API_KEY is not configured")

    params: dict[str, Any] = {
        "q": query,
        "count": max_results,
    }

    async with httpx.AsyncClient(timeout=settings.search_timeout_seconds) as client:
        response = await client.get(
            BRAVE_SEARCH_URL,
            params=params,
            headers={
                "Accept": "application/json",
                "X-Subscription-Token": settings.brave_api_key,
            },
        )
        response.raise_for_status()
        payload = response.json()

    return _parse_results(payload)
