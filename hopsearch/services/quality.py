from __future__ import annotations

import re

from hopsearch.models.quality import QualityCheckResult
from hopsearch.models.search import SearchResult
from hopsearch.services.heuristics import Heuristics, get_heuristics

_CITATION_RE = re.compile(r"\[(\d+)\]")


def _percent(part: int, whole: int) -> int:
    # half-up rounding (12.5 -> 13)
    return int(part / whole * 100 + 0.5) if whole else 0


def extract_citations(text: str) -> list[int]:
    """Distinct ``[n]`` citation numbers in ascending order."""
    return sorted({int(match) for match in _CITATION_RE.findall(text)})


def check_response_quality(
    response_text: str,
    sources: list[SearchResult],
    heuristics: Heuristics | None = None,
) -> QualityCheckResult:
    """Score a generated answer by how well its citations line up with the sources."""
    rules = (heuristics or get_heuristics()).response_quality
    issues: list[str] = []
    score = 100

    source_count = len(sources)
    citations = extract_citations(response_text)
    valid = [n for n in citations if 1 <= n <= source_count]
    invalid = [n for n in citations if not 1 <= n <= source_count]

    if source_count > 0 and not citations:
        issues.append("Response lacks citations despite having search sources")
        score -= rules.missing_citations_penalty

    if invalid:
        numbers = ", ".join(f"[{n}]" for n in invalid)
        issues.append(f"Invalid citation numbers: {numbers} (only {source_count} sources available)")
        score -= rules.invalid_citation_penalty

    coverage = _percent(len(valid), source_count)
    validity = _percent(len(valid), len(citations))

    if source_count > 0 and coverage < rules.min_coverage:
        issues.append(f"Low citation coverage: only {coverage}% of sources were cited")
        score -= rules.low_coverage_penalty

    if citations and validity < 100:
        issues.append(f"Some citations are invalid: {validity}% validity")
        score -= rules.partial_validity_penalty

    if len(response_text) < rules.short_response_chars and source_count > 0:
        issues.append("Response is unusually short given available sources")
        score -= rules.short_response_penalty

    if len(response_text) > rules.long_response_chars and not citations and source_count > 0:
        issues.append("Long response without citations - may contain unsourced information")
        score -= rules.long_uncited_penalty

    score = max(0, min(100, score))
    return QualityCheckResult(
        is_valid=not issues and score >= rules.min_valid_score,
        score=score,
        issues=issues,
        citation_coverage=coverage,
        citation_validity=validity,
    )
