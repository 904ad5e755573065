from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from hopsearch.config import settings
from hopsearch.tools import brave_search, mock_search, serpapi_search, tavily_search, web_utils


class _FakeAsyncClient:
    def __init__(self, payload, status_code: int = 200):
        self.payload = payload
        self.status_code = status_code
        self.calls: list[dict] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def get(self, url, params=None, headers=None):
        self.calls.append({"url": url, "params": params, "headers": headers})
        return httpx.Response(self.status_code, json=self.payload, request=httpx.Request("GET", url))


@pytest.mark.asyncio
async def test_brave_results_are_normalized():
    fake = _FakeAsyncClient(
        {
            "web": {
                "results": [
                    {
                        "title": "Rust ownership",
                        "url": "https://www.rust-lang.org/learn/ownership",
                        "description": " Ownership rules explained. ",
                        "page_age": "2024-05-01",
                    },
                    {
                        "title": "Borrowing",
                        "url": "https://doc.rust-lang.org/book/ch04",
                        "description": "",
                        "extra_snippets": ["Borrowing lets you", "refer to a value."],
                    },
                ]
            }
        }
    )

    with patch.object(settings, "brave_api_key", "brave-key"), patch(
        "hopsearch.tools.brave_search.httpx.AsyncClient", return_value=fake
    ):
        results = await brave_search.search("rust ownership", max_results=2)

    assert fake.calls[0]["params"] == {"q": "rust ownership", "count": 2}
    assert fake.calls[0]["headers"]["X-Subscription-Token"] == "brave-key"
    assert [r.id for r in results] == ["brave-0", "brave-1"]
    assert results[0].domain == "rust-lang.org"
    assert results[0].snippet == "Ownership rules explained."
    assert results[0].published_date == "2024-05-01"
    assert results[1].snippet == "Borrowing lets you refer to a value."


@pytest.mark.asyncio
async def test_brave_http_error_propagates():
    fake = _FakeAsyncClient({"error": "quota"}, status_code=429)

    with patch.object(settings, "brave_api_key", "brave-key"), patch(
        "hopsearch.tools.brave_search.httpx.AsyncClient", return_value=fake
    ):
        with pytest.raises(httpx.HTTPStatusError):
            await brave_search.search("rust ownership")


@pytest.mark.asyncio
async def test_brave_requires_key():
    with patch.object(settings, "brave_api_key", ""):
        with pytest.raises(RuntimeError, match="BRAVE_API_KEY"):
            await brave_search.search("rust ownership")


@pytest.mark.asyncio
async def test_serpapi_organic_results_are_capped():
    fake = _FakeAsyncClient(
        {
            "organic_results": [
                {"title": f"Result {i}", "link": f"https://site{i}.org/page", "snippet": "text", "date": "2024"}
                for i in range(5)
            ]
        }
    )

    with patch.object(settings, "serpapi_api_key", "serp-key"), patch(
        "hopsearch.tools.serpapi_search.httpx.AsyncClient", return_value=fake
    ):
        results = await serpapi_search.search("rust", max_results=3)

    assert fake.calls[0]["params"]["engine"] == "google"
    assert [r.id for r in results] == ["serp-0", "serp-1", "serp-2"]
    assert results[2].domain == "site2.org"


@pytest.mark.asyncio
async def test_tavily_results_are_normalized():
    client = MagicMock()
    client.search = AsyncMock(
        return_value={
            "results": [
                {
                    "title": "Rust book",
                    "url": "https://doc.rust-lang.org/book/",
                    "content": " The Rust Programming Language. ",
                    "published_date": "2023-01-01",
                }
            ]
        }
    )

    with patch.object(settings, "tavily_api_key", "tavily-key"), patch(
        "hopsearch.tools.tavily_search.AsyncTavilyClient", return_value=client
    ):
        results = await tavily_search.search("rust", max_results=3, time_range="year")

    client.search.assert_awaited_once_with(query="rust", search_depth="basic", max_results=3, time_range="year")
    assert results[0].id == "tavily-0"
    assert results[0].snippet == "The Rust Programming Language."
    assert results[0].domain == "doc.rust-lang.org"


def test_mock_search_adds_programming_result():
    response = mock_search.search("react hooks")

    assert response.is_mock_search
    assert response.engine == "mock"
    assert [r.id for r in response.results] == ["mock-1", "mock-2", "mock-3", "mock-4"]
    assert response.results[1].url == "https://www.example.com/guide/react-hooks"
    assert len(mock_search.search("react hooks", max_results=2).results) == 2


def test_extract_domain_and_validation():
    assert web_utils.extract_domain("https://www.nature.com/articles/x") == "nature.com"
    assert web_utils.extract_domain("not a url") == "not a url"
    assert web_utils.is_valid_url("https://nature.com")
    assert not web_utils.is_valid_url("ftp://nature.com")


def test_dedupe_by_url_keeps_first(result_factory):
    first = result_factory(1, url="https://nature.com/a/")
    duplicate = result_factory(2, url="https://NATURE.com/a")
    other = result_factory(3, url="https://nature.com/b")

    assert web_utils.dedupe_by_url([first, duplicate, other]) == [first, other]
