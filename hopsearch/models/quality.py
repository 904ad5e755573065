from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class QualityCheckResult:
    is_valid: bool
    score: int  # 0-100
    issues: list[str] = field(default_factory=list)
    citation_coverage: int = 0  # percentage of sources cited
    citation_validity: int = 0  # percentage of citations pointing at real sources

    def to_dict(self) -> dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "score": self.score,
            "issues": list(self.issues),
            "citationCoverage": self.citation_coverage,
            "citationValidity": self.citation_validity,
        }
