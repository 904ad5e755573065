from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from hopsearch.main import app
from hopsearch.services import streaming
from hopsearch.services.telemetry import telemetry

SNIPPET = (
    "Solar panels convert sunlight into electricity using photovoltaic cells. "
    "Output depends on irradiance, temperature and the angle of the array."
)


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok", "service": "hopsearch"}


def test_search_requires_query(client):
    response = client.post("/api/search", json={"query": "   "})

    assert response.status_code == 400
    assert response.json() == {"error": "Query is required"}


def test_search_returns_reranked_results(client, result_factory, response_factory):
    results = [
        result_factory(1, title="Solar panels explained", domain="energy.org", snippet=SNIPPET),
        result_factory(2, title="Solar panels", domain="example.com", snippet=SNIPPET),
    ]

    with patch(
        "hopsearch.api.routes.search.search_provider.search",
        new=AsyncMock(return_value=response_factory(results, "solar panels")),
    ):
        response = client.post("/api/search", json={"query": "solar panels"})

    assert response.status_code == 200
    body = response.json()
    assert [r["id"] for r in body["results"]] == ["r-1"]
    assert body["results"][0]["evidence"].startswith("Solar panels convert sunlight")
    assert body["isMockSearch"] is False
    assert body["engine"] == "brave"
    assert body["agentModeSuggested"] is False


def test_search_provider_failure_is_500(client):
    with patch(
        "hopsearch.api.routes.search.search_provider.search",
        new=AsyncMock(side_effect=RuntimeError("all providers down")),
    ):
        response = client.post("/api/search", json={"query": "solar panels"})

    assert response.status_code == 500
    assert response.json() == {"error": "Search failed", "message": "all providers down"}


def test_research_requires_query(client):
    response = client.post("/api/research", json={"query": ""})

    assert response.status_code == 400


class _FakeOrchestrator:
    def __init__(self, model=None):
        self.model = model
        self.calls = []

    async def run(self, query, history=None, answer_settings=None):
        self.calls.append((query, history, answer_settings))
        yield streaming.thinking("Analyzing query complexity...")
        yield streaming.answer_token("Hello")
        yield streaming.error("planner offline", stage="planning")


def test_research_streams_events(client):
    with patch("hopsearch.api.routes.research.AgentOrchestrator", _FakeOrchestrator):
        response = client.post(
            "/api/research",
            json={
                "query": "solar vs wind",
                "history": [{"role": "user", "content": "hi"}],
                "settings": {"tone": "casual", "citationStrictness": "strict"},
            },
        )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    body = response.text
    assert "event: thinking" in body
    assert 'data: {"chunk": "Hello"}' in body
    assert body.index("event: thinking") < body.index("event: answer_token") < body.index("event: error")


def test_telemetry_round_trip(client):
    posted = client.post(
        "/api/telemetry",
        json={"type": "search_failed", "query": "solar", "duration": 40, "error": "timeout"},
    )

    assert posted.json() == {"success": True}
    assert telemetry.events("search_failed")[0].duration_ms == 40
    stats = client.get("/api/telemetry/stats").json()
    assert stats["byType"] == {"search_failed": 1}
    assert stats["errors"] == 1


def test_telemetry_rejects_unknown_type(client):
    response = client.post("/api/telemetry", json={"type": "page_view"})

    assert response.status_code == 422


def test_search_suggests_agent_mode_for_comparisons(client, result_factory, response_factory):
    with patch(
        "hopsearch.api.routes.search.search_provider.search",
        new=AsyncMock(return_value=response_factory([result_factory(1, snippet=SNIPPET)])),
    ):
        response = client.post("/api/search", json={"query": "solar versus wind power"})

    assert response.status_code == 200
    assert response.json()["agentModeSuggested"] is True
