from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from loguru import logger

from hopsearch.agents.query_analyzer import should_use_agent_mode
from hopsearch.models.schemas import SearchRequest
from hopsearch.services import logger as log_service
from hopsearch.services import reranker
from hopsearch.tools import search_provider

router = APIRouter(prefix="/api/search", tags=["search"])


@router.post("")
async def search(request: SearchRequest):
    """Search the web, then filter and re-rank the results."""
    query = request.query.strip()
    if not query:
        return JSONResponse(status_code=400, content={"error": "Query is required"})

    try:
        response = await search_provider.search(query)
    except Exception as e:
        logger.exception(f"Search failed for '{query[:80]}'")
        return JSONResponse(status_code=500, content={"error": "Search failed", "message": str(e)})

    response.results = reranker.rerank(response.results, query)
    validation = reranker.validate_results(response.results)
    if not validation.is_valid:
        # Still returned; the issues are only logged.
        log_service.log_event(
            event_type="search_quality",
            message="Search results have quality issues",
            query=query[:100],
            issues=validation.issues,
            result_count=len(response.results),
        )
    body = response.to_dict()
    # Lets the client switch to /api/research for multi-part questions.
    body["agentModeSuggested"] = should_use_agent_mode(query)
    return body
