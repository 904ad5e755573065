from __future__ import annotations

from urllib.parse import quote, urlparse

from hopsearch.models.search import SearchResult

FAVICON_URL = "https://www.google.com/s2/favicons?domain={domain}&sz=32"


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlparse(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except ValueError:
        return False


def extract_domain(url: str) -> str:
    """Hostname without a leading ``www.``; the raw string when it does not parse."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return url
    if not host:
        return url
    return host[4:] if host.startswith("www.") else host


def favicon_url(domain: str) -> str:
    return FAVICON_URL.format(domain=quote(domain, safe=".-"))


def dedupe_by_url(results: list[SearchResult]) -> list[SearchResult]:
    """Drop repeated URLs, keeping the first occurrence and the original order."""
    seen: set[str] = set()
    unique: list[SearchResult] = []
    for result in results:
        key = result.url.strip().rstrip("/").lower()
        if key and key in seen:
            continue
        seen.add(key)
        unique.append(result)
    return unique
