from __future__ import annotations

from typing import Any

from tavily import AsyncTavilyClient

from hopsearch.config import settings
from hopsearch.models.search import SearchResult
from hopsearch.tools import web_utils


async def search(
    query: str,
    *,
    max_results: int = 10,
    search_depth: str = "basic",
    time_range: str | None = None,
) -> list[SearchResult]:
    """Execute a Tavily web search and return normalized results."""
    if not settings.tavily_api_key:
        raise RuntimeError("TAVILY_API_KEY is not configured")

    client = AsyncTavilyClient(api_key=settings.tavily_api_key)

    kwargs: dict[str, Any] = {
        "query": query,
        "search_depth": search_depth,
        "max_results": max_results,
    }
    if time_range:
        kwargs["time_range"] = time_range

    response = await client.search(**kwargs)

    results: list[SearchResult] = []
    for idx, item in enumerate(response.get("results", []) or []):
        url = item.get("url", "") or ""
        domain = web_utils.extract_domain(url)
        results.append(
            SearchResult(
                id=f"tavily-{idx}",
                title=item.get("title", "") or "",
                url=url,
                snippet=(item.get("content", "") or "").strip(),
                domain=domain,
                favicon=web_utils.favicon_url(domain),
                published_date=item.get("published_date"),
            )
        )
    return results
