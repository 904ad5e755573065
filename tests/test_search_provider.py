from __future__ import annotations

from contextlib import ExitStack
from unittest.mock import AsyncMock, patch

import pytest

from hopsearch.config import settings
from hopsearch.exceptions import SearchProviderError
from hopsearch.services.telemetry import telemetry
from hopsearch.tools import search_provider


def _configure(stack: ExitStack, **overrides) -> None:
    values = {
        "search_provider": "auto",
        "brave_api_key": "",
        "tavily_api_key": "",
        "serpapi_api_key": "",
        "search_fallback_to_mock": True,
    }
    values.update(overrides)
    for name, value in values.items():
        stack.enter_context(patch.object(settings, name, value))


@pytest.mark.asyncio
async def test_mock_provider_is_flagged():
    with ExitStack() as stack:
        _configure(stack, search_provider="mock")
        response = await search_provider.search("machine learning")

    assert response.engine == "mock"
    assert response.is_mock_search
    assert [e.type for e in telemetry.events()] == ["search_started"]


@pytest.mark.asyncio
async def test_first_configured_provider_answers(result_factory):
    brave = AsyncMock(return_value=[result_factory(1), result_factory(2)])

    with ExitStack() as stack:
        _configure(stack, brave_api_key="brave-key")
        stack.enter_context(patch("hopsearch.tools.search_provider.brave_search.search", new=brave))
        response = await search_provider.search("rust ownership", max_results=4)

    brave.assert_awaited_once_with("rust ownership", max_results=4)
    assert response.engine == "brave"
    assert not response.is_mock_search
    assert response.fallback_from is None
    succeeded = telemetry.events("search_succeeded")
    assert succeeded[0].metadata == {"engine": "brave", "resultCount": 2}


@pytest.mark.asyncio
async def test_failed_provider_falls_through_to_next(result_factory):
    brave = AsyncMock(side_effect=RuntimeError("429 rate limited"))
    tavily = AsyncMock(return_value=[result_factory(1)])

    with ExitStack() as stack:
        _configure(stack, brave_api_key="brave-key", tavily_api_key="tavily-key")
        stack.enter_context(patch("hopsearch.tools.search_provider.brave_search.search", new=brave))
        stack.enter_context(patch("hopsearch.tools.search_provider.tavily_search.search", new=tavily))
        response = await search_provider.search("rust ownership")

    assert response.engine == "tavily"
    assert response.fallback_from == "brave"
    assert response.fallback_reason == "429 rate limited"
    assert telemetry.events("search_failed")[0].error == "429 rate limited"


@pytest.mark.asyncio
async def test_all_providers_failing_falls_back_to_mock():
    with ExitStack() as stack:
        _configure(stack, serpapi_api_key="serp-key")
        stack.enter_context(
            patch(
                "hopsearch.tools.search_provider.serpapi_search.search",
                new=AsyncMock(side_effect=RuntimeError("boom")),
            )
        )
        response = await search_provider.search("rust ownership")

    assert response.is_mock_search
    assert response.fallback_from == "serpapi"


@pytest.mark.asyncio
async def test_no_configured_provider_uses_mock():
    with ExitStack() as stack:
        _configure(stack)
        response = await search_provider.search("rust ownership")

    assert response.is_mock_search
    assert response.fallback_reason == "no search provider configured"


@pytest.mark.asyncio
async def test_disabled_mock_fallback_raises():
    with ExitStack() as stack:
        _configure(stack, brave_api_key="brave-key", search_fallback_to_mock=False)
        stack.enter_context(
            patch(
                "hopsearch.tools.search_provider.brave_search.search",
                new=AsyncMock(side_effect=RuntimeError("boom")),
            )
        )
        with pytest.raises(SearchProviderError, match="boom"):
            await search_provider.search("rust ownership")


@pytest.mark.asyncio
async def test_explicit_provider_ignores_other_keys(result_factory):
    serp = AsyncMock(return_value=[result_factory(1)])
    brave = AsyncMock(return_value=[result_factory(2)])

    with ExitStack() as stack:
        _configure(stack, search_provider="serpapi", brave_api_key="brave-key", serpapi_api_key="serp-key")
        stack.enter_context(patch("hopsearch.tools.search_provider.serpapi_search.search", new=serp))
        stack.enter_context(patch("hopsearch.tools.search_provider.brave_search.search", new=brave))
        response = await search_provider.search("rust ownership")

    assert response.engine == "serpapi"
    brave.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_provider_raises():
    with ExitStack() as stack:
        _configure(stack, search_provider="altavista")
        with pytest.raises(ValueError, match="Unsupported SEARCH_PROVIDER"):
            await search_provider.search("rust ownership")
