from __future__ import annotations

import time
from types import ModuleType

from loguru import logger

from hopsearch.config import settings
from hopsearch.exceptions import SearchProviderError
from hopsearch.models.search import SearchResponse
from hopsearch.services import logger as log_service
from hopsearch.services.telemetry import telemetry
from hopsearch.tools import brave_search, mock_search, serpapi_search, tavily_search

# Tried in this order by the "auto" provider.
PROVIDERS: dict[str, tuple[ModuleType, str]] = {
    "brave": (brave_search, "brave_api_key"),
    "tavily": (tavily_search, "tavily_api_key"),
    "serpapi": (serpapi_search, "serpapi_api_key"),
}


def _configured_chain(provider: str) -> list[str]:
    if provider == "auto":
        return [name for name, (_, key_attr) in PROVIDERS.items() if getattr(settings, key_attr, "")]
    if provider in PROVIDERS:
        return [provider]
    raise ValueError(f"Unsupported SEARCH_PROVIDER: {settings.search_provider}")


async def _run_provider(name: str, query: str, max_results: int) -> SearchResponse:
    module, _ = PROVIDERS[name]
    t0 = time.monotonic()
    try:
        results = await module.search(query, max_results=max_results)
    except Exception as e:
        duration_ms = int((time.monotonic() - t0) * 1000)
        log_service.log_search_call(query, name, duration_ms=duration_ms, status="failed", error=str(e))
        telemetry.record(
            "search_failed",
            query=query,
            duration_ms=duration_ms,
            error=str(e),
            metadata={"engine": name},
        )
        raise

    duration_ms = int((time.monotonic() - t0) * 1000)
    log_service.log_search_call(query, name, result_count=len(results), duration_ms=duration_ms)
    telemetry.record(
        "search_succeeded",
        query=query,
        duration_ms=duration_ms,
        metadata={"engine": name, "resultCount": len(results)},
    )
    return SearchResponse(results=results, query=query, engine=name, search_time_ms=duration_ms)


async def search(query: str, *, max_results: int | None = None) -> SearchResponse:
    """Search the web with the configured provider chain.

    Real providers are tried in order; the first one that answers wins, even
    with zero results. When all of them fail (or none is configured) the mock
    provider answers, flagged with ``is_mock_search``, unless mock fallback is
    disabled.
    """
    provider = settings.search_provider.lower().strip()
    limit = max_results or settings.search_max_results
    telemetry.record("search_started", query=query, metadata={"provider": provider})

    if provider == "mock":
        return mock_search.search(query, max_results=limit)

    chain = _configured_chain(provider)
    first_failure: tuple[str, str] | None = None
    for name in chain:
        try:
            response = await _run_provider(name, query, limit)
        except Exception as e:
            logger.warning(f"{name} search failed for '{query[:80]}': {e}")
            if first_failure is None:
                first_failure = (name, str(e))
            continue
        if first_failure is not None:
            response.fallback_from, response.fallback_reason = first_failure
        return response

    if not settings.search_fallback_to_mock:
        reason = first_failure[1] if first_failure else "no search provider configured"
        raise SearchProviderError(f"Search failed for '{query}': {reason}")

    logger.warning(f"Falling back to mock search for '{query[:80]}'")
    response = mock_search.search(query, max_results=limit)
    if first_failure is not None:
        response.fallback_from, response.fallback_reason = first_failure
    else:
        response.fallback_reason = "no search provider configured"
    return response
