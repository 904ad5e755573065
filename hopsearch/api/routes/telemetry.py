from __future__ import annotations

from fastapi import APIRouter

from hopsearch.models.schemas import TelemetryRequest
from hopsearch.services.telemetry import telemetry

router = APIRouter(prefix="/api/telemetry", tags=["telemetry"])


@router.post("")
async def record_event(request: TelemetryRequest):
    """Record a telemetry event reported by a client."""
    telemetry.record(
        request.type,
        query=request.query,
        duration_ms=request.duration_ms,
        error=request.error,
        metadata=request.metadata,
    )
    return {"success": True}


@router.get("/stats")
async def stats():
    return telemetry.stats()
