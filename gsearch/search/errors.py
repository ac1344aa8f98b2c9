"""Search failure taxonomy."""


class SearchError(Exception):
    """Base class for failures of a single query."""

    reason = "search_failed"


class EngineUnavailable(SearchError):
    """The browser engine could not launch a browser or allocate a session."""

    reason = "engine_unavailable"


class SearchBoxNotFound(SearchError):
    """None of the search box selectors matched the home page."""

    reason = "search_box_not_found"


class SearchTimeout(SearchError):
    """A bounded wait did not reach its target condition in time."""

    reason = "timeout"

    def __init__(self, state: str, timeout_ms: int):
        super().__init__(f"timed out after {timeout_ms}ms while in state {state}")
        self.state = state
        self.timeout_ms = timeout_ms


class NavigationFailed(SearchError):
    """Unrecoverable navigation error reported by the browser."""

    reason = "navigation_failed"


class PersistenceFailure(SearchError):
    """Saving browser state failed. Never fatal for the query."""

    reason = "persistence_failure"

    def __init__(self, failures: list[str]):
        super().__init__("; ".join(failures))
        self.failures = failures


class ChallengeDetected(SearchError):
    """A bot challenge was shown to a headless browser."""

    reason = "challenge"

    def __init__(self, url: str):
        super().__init__(f"bot challenge detected at {url}")
        self.url = url
