"""Result extraction with cascading selector strategies."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import parse_qs, urlparse

from loguru import logger

from gsearch.search.models import SearchResult

SNIPPET_MAX_CHARS = 200
# Engine-owned hosts (accounts, policies, maps) are served from google.com on every mirror.
DEFAULT_EXCLUDED_DOMAINS = ("google.com",)

_CONTAINER_SCRIPT = """
(elements, params) => elements.map((el) => {
  const titleEl = el.querySelector(params.title);
  const linkEl = el.querySelector(params.link);
  const snippetEl = el.querySelector(params.snippet);
  return {
    title: titleEl ? (titleEl.textContent || '') : '',
    link: linkEl ? (linkEl.href || '') : '',
    snippet: snippetEl ? (snippetEl.textContent || '') : '',
  };
})
"""

_ANCHOR_SCRIPT = """
(elements) => elements.map((el) => ({
  title: el.textContent || '',
  link: el.href || el.getAttribute('href') || '',
  snippet: el.parentElement ? (el.parentElement.textContent || '') : '',
}))
"""


class ExtractionStrategy(Protocol):
    name: str

    async def attempt(self, page: Any, limit: int) -> list[SearchResult]: ...


@dataclass(frozen=True, slots=True)
class SelectorStrategy:
    """Result container plus title/snippet/link sub-selectors."""

    name: str
    container: str
    title: str = "h3"
    snippet: str = ".VwiC3b, [data-sncf]"
    link: str = "a"

    async def attempt(self, page: Any, limit: int) -> list[SearchResult]:
        rows = await page.eval_on_selector_all(
            self.container,
            _CONTAINER_SCRIPT,
            {"title": self.title, "snippet": self.snippet, "link": self.link},
        )
        return clean_results(rows or [], limit)


@dataclass(frozen=True, slots=True)
class OutboundLinkStrategy:
    """Every absolute link outside the engine domain and the excluded domains."""

    engine_url: str
    excluded_domains: tuple[str, ...] = DEFAULT_EXCLUDED_DOMAINS
    name: str = "outbound-links"
    selector: str = "a[href^='http']"

    async def attempt(self, page: Any, limit: int) -> list[SearchResult]:
        rows = await page.eval_on_selector_all(self.selector, _ANCHOR_SCRIPT)
        blocked = {registrable_domain(self.engine_url), *self.excluded_domains}
        outbound = [
            row
            for row in rows or []
            if not any(is_same_site(str(row.get("link") or ""), domain) for domain in blocked)
        ]
        return clean_results(outbound, limit)


DEFAULT_STRATEGIES: tuple[SelectorStrategy, ...] = (
    SelectorStrategy(name="search-g", container="#search .g"),
    SelectorStrategy(name="g", container=".g"),
    SelectorStrategy(name="rso-blocks", container="#rso div.MjjYud"),
)


async def extract_results(
    page: Any,
    limit: int,
    *,
    engine_url: str,
    strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES,
    excluded_domains: Sequence[str] = DEFAULT_EXCLUDED_DOMAINS,
) -> list[SearchResult]:
    """Run strategies in order; the first with a valid result wins."""
    fallback = OutboundLinkStrategy(engine_url, tuple(excluded_domains))
    cascade: list[ExtractionStrategy] = [*strategies, fallback]
    for strategy in cascade:
        results = await strategy.attempt(page, limit)
        if results:
            logger.debug("Extracted {} results with strategy {}", len(results), strategy.name)
            return results[:limit]
    logger.debug("No results extracted from {}", getattr(page, "url", "page"))
    return []


def clean_results(rows: Iterable[dict[str, Any]], limit: int) -> list[SearchResult]:
    """Normalise raw rows, drop invalid or duplicate links, cap at limit."""
    results: list[SearchResult] = []
    seen: set[str] = set()
    for row in rows:
        title = _squash(row.get("title"))
        link = unwrap_redirect(str(row.get("link") or "").strip())
        snippet = _squash(row.get("snippet"))[:SNIPPET_MAX_CHARS]
        result = SearchResult(title=title, link=link, snippet=snippet)
        if not result.is_valid or link in seen:
            continue
        seen.add(link)
        results.append(result)
        if len(results) >= limit:
            break
    return results


def registrable_domain(url: str) -> str:
    """https://www.google.co.uk -> google.co.uk"""
    host = (urlparse(url).hostname or url).lower().rstrip(".")
    return host[4:] if host.startswith("www.") else host


def is_same_site(link: str, domain: str) -> bool:
    host = (urlparse(link).hostname or "").lower().rstrip(".")
    if not host or not domain:
        return False
    return host == domain or host.endswith(f".{domain}")


def unwrap_redirect(link: str) -> str:
    """Resolve engine redirect links like /url?q=https://target."""
    parsed = urlparse(link)
    if parsed.path != "/url" or not parsed.query:
        return link
    params = parse_qs(parsed.query)
    for key in ("q", "url"):
        target = (params.get(key) or [""])[0]
        if target.startswith(("http://", "https://")):
            return target
    return link


def _squash(value: Any) -> str:
    return " ".join(str(value or "").split())
