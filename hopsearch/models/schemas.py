from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from hopsearch.services.telemetry import TelemetryType

Tone = Literal["casual", "professional", "technical"]
Depth = Literal["brief", "detailed", "comprehensive"]
CitationStrictness = Literal["relaxed", "standard", "strict"]


class AnswerSettings(BaseModel):
    """Per-conversation knobs for the answer prompt."""

    model_config = ConfigDict(populate_by_name=True)

    tone: Tone = "professional"
    depth: Depth = "detailed"
    citation_strictness: CitationStrictness = Field(default="standard", alias="citationStrictness")


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


# --- Requests ---


class SearchRequest(BaseModel):
    query: str = ""


class ResearchRequest(BaseModel):
    query: str = ""
    history: list[ChatMessage] = []
    settings: AnswerSettings | None = None
    model: str | None = None


class TelemetryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: TelemetryType
    query: str | None = None
    duration_ms: int | None = Field(default=None, alias="duration")
    error: str | None = None
    metadata: dict[str, Any] = {}


# --- Responses ---


class ErrorResponse(BaseModel):
    error: str
    message: str | None = None
