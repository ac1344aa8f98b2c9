"""Browser-driven search engine automation."""

from gsearch.search.errors import (
    ChallengeDetected,
    EngineUnavailable,
    NavigationFailed,
    PersistenceFailure,
    SearchBoxNotFound,
    SearchError,
    SearchTimeout,
)
from gsearch.search.models import (
    FingerprintConfig,
    SavedState,
    SearchOptions,
    SearchResponse,
    SearchResult,
)
from gsearch.search.orchestrator import SearchOrchestrator, search, search_batch

__all__ = [
    "SearchOrchestrator",
    "search",
    "search_batch",
    "FingerprintConfig",
    "SavedState",
    "SearchOptions",
    "SearchResponse",
    "SearchResult",
    "SearchError",
    "EngineUnavailable",
    "SearchBoxNotFound",
    "SearchTimeout",
    "NavigationFailed",
    "PersistenceFailure",
    "ChallengeDetected",
]
