from __future__ import annotations

import json as _json

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from hopsearch.agents.orchestrator import AgentOrchestrator
from hopsearch.models.schemas import ResearchRequest
from hopsearch.services import logger as log_service
from hopsearch.services import streaming

router = APIRouter(prefix="/api/research", tags=["research"])


@router.post("")
async def research(request: ResearchRequest):
    """Stream the agent pipeline for one query as server-sent events."""
    query = request.query.strip()
    if not query:
        return JSONResponse(status_code=400, content={"error": "Query is required"})

    async def event_generator():
        log_service.log_event(
            event_type="research_started",
            message="Research started",
            query=query[:100],
            model=request.model,
        )
        orchestrator = AgentOrchestrator(model=request.model)
        try:
            async for event in orchestrator.run(query, request.history, request.settings):
                yield {
                    "event": event.event.value,
                    "data": _json.dumps(event.data),
                }
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in research stream",
                error=str(e),
            )
            error_event = streaming.error("Research stream failed unexpectedly.")
            yield {
                "event": error_event.event.value,
                "data": _json.dumps(error_event.data),
            }

    return EventSourceResponse(event_generator())
