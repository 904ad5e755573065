"""Filter synthetic results, score the rest, and attach evidence sentences.

Pure functions over ``SearchResult`` lists. Thresholds and score tables come
from ``Heuristics.reranker`` so each rule can be tuned or tested on its own.
"""
from __future__ import annotations

import re
from dataclasses import replace

from loguru import logger

from hopsearch.models.search import RerankOutcome, ResultsValidation, SearchResult
from hopsearch.services.heuristics import Heuristics, RerankerRules, get_heuristics

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def _rules(heuristics: Heuristics | None) -> RerankerRules:
    return (heuristics or get_heuristics()).reranker


def _words(text: str, *, min_len: int) -> list[str]:
    """Lowercased whitespace tokens of at least ``min_len`` characters."""
    return [word for word in text.lower().split() if len(word) >= min_len]


def scoring_query(query: str, rules: RerankerRules) -> str:
    """Use a short prefix of verbose queries for keyword and title comparisons."""
    if len(query) > rules.verbose_query_chars:
        return " ".join(query.split()[: rules.verbose_query_prefix_words])
    return query


def _slug_pattern(query: str, rules: RerankerRules) -> str:
    return "-".join(_words(query, min_len=4)[: rules.slug_pattern_words])


def is_mock_result(result: SearchResult, query: str, heuristics: Heuristics | None = None) -> bool:
    """True when a result looks like placeholder data rather than a real page."""
    rules = _rules(heuristics)
    domain = result.domain.lower()
    url = result.url.lower()
    title = result.title.lower().strip()
    query_lower = query.lower().strip()

    if any(blocked in domain for blocked in rules.domain_blacklist):
        return True

    if any(ref in domain for ref in rules.reference_domains):
        underscored = re.sub(r"\s+", "_", query_lower)
        if underscored and underscored in url and title == query_lower:
            return True

    is_placeholder_domain = any(p in domain for p in rules.placeholder_domains)
    if is_placeholder_domain:
        slug = re.sub(r"\s+", "-", query_lower)
        if slug and slug in url:
            return True

    pattern = _slug_pattern(query, rules)
    if pattern and pattern in url and (is_placeholder_domain or "test" in domain):
        return True

    # Long natural-language queries can legitimately produce exact-title hits.
    if len(query) <= rules.long_query_chars:
        templated = {template.format(query=query_lower) for template in rules.mock_title_templates}
        if title in templated:
            return True

    return False


def domain_credibility(domain: str, heuristics: Heuristics | None = None) -> int:
    rules = _rules(heuristics)
    scores = rules.domain_scores
    domain_lower = domain.lower()
    if any(blocked in domain_lower for blocked in rules.domain_blacklist):
        return scores.blacklisted
    if any(domain_lower.endswith(suffix) for suffix in rules.high_credibility_suffixes):
        return scores.high_credibility
    if any(trusted in domain_lower for trusted in rules.trusted_domains):
        return scores.trusted
    return scores.default


def url_validity(url: str, query: str, heuristics: Heuristics | None = None) -> int:
    rules = _rules(heuristics)
    url_lower = url.lower()
    if any(p in url_lower for p in rules.placeholder_domains):
        return rules.url_scores.placeholder

    pattern = _slug_pattern(query, rules)
    if pattern and pattern in url_lower and any(m in url_lower for m in rules.placeholder_url_markers):
        return rules.url_scores.placeholder
    return rules.url_scores.normal


def snippet_quality(snippet: str, heuristics: Heuristics | None = None) -> int:
    rules = _rules(heuristics)
    if len(snippet) < rules.min_snippet_chars:
        return rules.short_snippet_penalty
    return min(rules.max_snippet_points, len(snippet) // rules.snippet_chars_per_point)


def title_relevance(
    title: str,
    query: str,
    heuristics: Heuristics | None = None,
    *,
    is_long_query: bool | None = None,
) -> int:
    """Score keyword overlap between title and query.

    ``is_long_query`` should describe the query the user typed; it defaults to
    the length of ``query`` when the caller passes the full text.
    """
    rules = _rules(heuristics)
    scores = rules.title_scores
    if is_long_query is None:
        is_long_query = len(query) > rules.long_query_chars

    title_lower = title.lower()
    query_lower = query.lower()
    if title_lower.strip() == query_lower.strip():
        return scores.exact_match_long_query if is_long_query else scores.exact_match

    words = _words(query, min_len=3)
    matches = sum(1 for word in words if word in title_lower)
    if matches >= len(words) / 2:
        return scores.keyword_match
    return 0


def quality_score(result: SearchResult, query: str, heuristics: Heuristics | None = None) -> int:
    """Sum of domain, URL, snippet and title signals."""
    rules = _rules(heuristics)
    basis = scoring_query(query, rules)
    return (
        domain_credibility(result.domain, heuristics)
        + url_validity(result.url, query, heuristics)
        + snippet_quality(result.snippet, heuristics)
        + title_relevance(
            result.title,
            basis,
            heuristics,
            is_long_query=len(query) > rules.long_query_chars,
        )
    )


def relevance_score(result: SearchResult, query: str, heuristics: Heuristics | None = None) -> int:
    rules = _rules(heuristics)
    scores = rules.relevance_scores
    title_lower = result.title.lower()
    snippet_lower = result.snippet.lower()

    score = 0
    for word in _words(scoring_query(query, rules), min_len=3):
        if word in title_lower:
            score += scores.title_hit
        if word in snippet_lower:
            score += scores.snippet_hit

    if any(trusted in result.domain.lower() for trusted in rules.trusted_domains):
        score += scores.trusted_domain
    return score


def combined_score(result: SearchResult, query: str, heuristics: Heuristics | None = None) -> float:
    rules = _rules(heuristics)
    return (
        rules.quality_weight * quality_score(result, query, heuristics)
        + rules.relevance_weight * relevance_score(result, query, heuristics)
    )


def extract_evidence(result: SearchResult, query: str, heuristics: Heuristics | None = None) -> str:
    """First snippet sentence covering half the query's significant words."""
    rules = _rules(heuristics)
    words = _words(query, min_len=4)
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(result.snippet) if s.strip()]
    for sentence in sentences:
        lowered = sentence.lower()
        matches = sum(1 for word in words if word in lowered)
        if matches >= len(words) / 2:
            return sentence
    return result.snippet[: rules.evidence_fallback_chars]


def rerank_with_report(
    results: list[SearchResult],
    query: str,
    heuristics: Heuristics | None = None,
) -> RerankOutcome:
    """Drop synthetic and low-quality results, then rank by combined score.

    Returned results are copies carrying ``evidence`` and ``relevance_score``;
    the inputs are left untouched.
    """
    rules = _rules(heuristics)
    mock_count = 0
    dropped_count = 0
    scored: list[tuple[float, SearchResult]] = []

    for result in results:
        if is_mock_result(result, query, heuristics):
            mock_count += 1
            continue
        quality = quality_score(result, query, heuristics)
        if quality < 0:
            dropped_count += 1
            continue
        relevance = relevance_score(result, query, heuristics)
        combined = rules.quality_weight * quality + rules.relevance_weight * relevance
        enriched = replace(
            result,
            relevance_score=relevance,
            evidence=extract_evidence(result, query, heuristics),
        )
        scored.append((combined, enriched))

    # sorted() is stable, so ties keep their input order
    ranked = [item for _, item in sorted(scored, key=lambda pair: pair[0], reverse=True)]
    kept = ranked[: rules.max_results]

    if mock_count or dropped_count:
        logger.debug(
            f"Re-ranked {len(results)} results for '{query[:80]}': "
            f"{mock_count} synthetic, {dropped_count} low quality, {len(kept)} kept"
        )
    return RerankOutcome(results=kept, mock_count=mock_count, dropped_count=dropped_count)


def rerank(
    results: list[SearchResult],
    query: str,
    heuristics: Heuristics | None = None,
) -> list[SearchResult]:
    return rerank_with_report(results, query, heuristics).results


def validate_results(results: list[SearchResult]) -> ResultsValidation:
    """Sanity-check a result set before it is used as answer context."""
    issues: list[str] = []
    if not results:
        issues.append("No search results found")
    if len(results) < 3:
        issues.append("Insufficient search results for reliable answer")

    low_quality = sum(1 for r in results if len(r.snippet) < 50)
    if low_quality > len(results) / 2:
        issues.append("Many results have low-quality snippets")

    return ResultsValidation(is_valid=not issues, issues=issues)
