from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator

Complexity = Literal["simple", "moderate", "complex"]


class QueryAnalysis(BaseModel):
    """Complexity verdict for one query. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    needs_multi_step: bool
    complexity: Complexity
    suggested_steps: list[str] = []
    reasoning: str = ""

    @model_validator(mode="after")
    def _drop_steps_for_single_search(self) -> "QueryAnalysis":
        if not self.needs_multi_step and self.suggested_steps:
            # frozen model: bypass __setattr__ during validation
            object.__setattr__(self, "suggested_steps", [])
        return self


@dataclass(frozen=True)
class AnalysisOk:
    """Analysis decoded from the generation service reply."""

    analysis: QueryAnalysis

    @property
    def is_fallback(self) -> bool:
        return False


@dataclass(frozen=True)
class AnalysisFallback:
    """Analysis produced by the keyword heuristic after the primary path failed."""

    analysis: QueryAnalysis
    reason: str

    @property
    def is_fallback(self) -> bool:
        return True


AnalysisOutcome = AnalysisOk | AnalysisFallback
