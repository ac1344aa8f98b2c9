"""gsearch - resilient Google search through a real browser."""

from gsearch.search import (
    SearchOptions,
    SearchOrchestrator,
    SearchResponse,
    SearchResult,
    search,
    search_batch,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "SearchOrchestrator",
    "SearchOptions",
    "SearchResponse",
    "SearchResult",
    "search",
    "search_batch",
]
