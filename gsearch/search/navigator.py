"""Navigation and bot-challenge state machine for one search session."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from loguru import logger
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from gsearch.search.errors import (
    ChallengeDetected,
    NavigationFailed,
    SearchBoxNotFound,
    SearchError,
    SearchTimeout,
)
from gsearch.search.extractor import (
    DEFAULT_EXCLUDED_DOMAINS,
    DEFAULT_STRATEGIES,
    ExtractionStrategy,
    extract_results,
)
from gsearch.search.models import SearchResult

if TYPE_CHECKING:
    from gsearch.config.schema import EngineConfig, PacingConfig

DEFAULT_DOMAINS = (
    "https://www.google.com",
    "https://www.google.co.uk",
    "https://www.google.ca",
    "https://www.google.com.au",
)
DEFAULT_CHALLENGE_PATTERNS = ("/sorry/", "/recaptcha/", "/captcha")
DEFAULT_RESULTS_PATTERNS = ("/search?",)
DEFAULT_SEARCH_BOX_SELECTORS = (
    "textarea[name='q']",
    "input[name='q']",
    "textarea[title='Search']",
    "textarea",
)
DEFAULT_RESULTS_READY_SELECTOR = "#search, #rso, .g, div[role='main']"


class NavState(str, Enum):
    INIT = "init"
    HOME_LOADING = "home_loading"
    CHALLENGE_PRESENTED = "challenge_presented"
    SEARCH_BOX_READY = "search_box_ready"
    QUERY_SUBMITTING = "query_submitting"
    RESULTS_LOADING = "results_loading"
    RESULTS_READY = "results_ready"
    EXTRACTING = "extracting"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Pacing:
    """Random delay bounds used while typing and submitting a query."""

    key_delay_min_ms: int = 10
    key_delay_max_ms: int = 30
    submit_pause_min_ms: int = 100
    submit_pause_max_ms: int = 300

    def key_delay(self, rng: random.Random) -> float:
        return rng.uniform(self.key_delay_min_ms, self.key_delay_max_ms) / 1000

    def submit_pause(self, rng: random.Random) -> float:
        return rng.uniform(self.submit_pause_min_ms, self.submit_pause_max_ms) / 1000

    @classmethod
    def from_config(cls, config: "PacingConfig") -> "Pacing":
        return cls(
            key_delay_min_ms=config.key_delay_min_ms,
            key_delay_max_ms=config.key_delay_max_ms,
            submit_pause_min_ms=config.submit_pause_min_ms,
            submit_pause_max_ms=config.submit_pause_max_ms,
        )


@dataclass(frozen=True, slots=True)
class EngineProfile:
    """URL patterns and selectors describing the search engine UI."""

    challenge_patterns: tuple[str, ...] = DEFAULT_CHALLENGE_PATTERNS
    results_patterns: tuple[str, ...] = DEFAULT_RESULTS_PATTERNS
    search_box_selectors: tuple[str, ...] = DEFAULT_SEARCH_BOX_SELECTORS
    results_ready_selector: str = DEFAULT_RESULTS_READY_SELECTOR
    manual_solve_timeout_ms: int = 0
    excluded_domains: tuple[str, ...] = DEFAULT_EXCLUDED_DOMAINS
    strategies: tuple[ExtractionStrategy, ...] = DEFAULT_STRATEGIES

    @classmethod
    def from_config(cls, config: "EngineConfig") -> "EngineProfile":
        return cls(
            challenge_patterns=tuple(config.challenge_patterns),
            results_patterns=tuple(config.results_patterns),
            search_box_selectors=tuple(config.search_box_selectors),
            results_ready_selector=config.results_ready_selector,
            manual_solve_timeout_ms=config.manual_solve_timeout_ms,
            excluded_domains=tuple(config.excluded_domains),
        )


def is_challenge_url(url: str, patterns: Sequence[str] = DEFAULT_CHALLENGE_PATTERNS) -> bool:
    """Match host + path only, so query text never looks like a challenge."""
    if not url:
        return False
    parsed = urlparse(url)
    location = f"{parsed.netloc}{parsed.path}".lower()
    return any(pattern.lower() in location for pattern in patterns)


class SearchNavigator:
    """Drive one page from the engine home page to extracted results.

    Headless sessions raise ChallengeDetected on a bot challenge so the caller
    can relaunch visibly. Visible sessions wait for a human to solve it.
    """

    def __init__(
        self,
        page: Any,
        *,
        headless: bool,
        timeout_ms: int,
        profile: EngineProfile | None = None,
        pacing: Pacing | None = None,
        rng: random.Random | None = None,
    ):
        self.page = page
        self.headless = headless
        self.timeout_ms = timeout_ms
        self.profile = profile or EngineProfile()
        self.pacing = pacing or Pacing()
        self.rng = rng or random.Random()
        self.state = NavState.INIT
        self.history: list[NavState] = [NavState.INIT]

    async def run(self, domain: str, query: str, limit: int) -> list[SearchResult]:
        try:
            await self._load_home(domain)
            search_box = await self._find_search_box()
            await self._submit_query(search_box, query)
            await self._wait_for_results()

            self._transition(NavState.EXTRACTING)
            results = await extract_results(
                self.page,
                limit,
                engine_url=domain,
                strategies=self.profile.strategies,
                excluded_domains=self.profile.excluded_domains,
            )
            self._transition(NavState.DONE)
            return results
        except ChallengeDetected:
            raise
        except PlaywrightTimeoutError as e:
            state = self.state
            self._transition(NavState.FAILED)
            raise SearchTimeout(state.value, self._timeout_for(state)) from e
        except SearchError:
            self._transition(NavState.FAILED)
            raise
        except Exception as e:
            self._transition(NavState.FAILED)
            raise NavigationFailed(f"{type(e).__name__}: {e}") from e

    async def _load_home(self, domain: str) -> None:
        self._transition(NavState.HOME_LOADING)
        logger.info("Visiting {}", domain)
        response = await self.page.goto(
            domain,
            timeout=self.timeout_ms,
            wait_until="domcontentloaded",
        )
        await self._handle_challenge(getattr(response, "url", None))

    async def _find_search_box(self) -> Any:
        for selector in self.profile.search_box_selectors:
            element = await self.page.query_selector(selector)
            if element:
                self._transition(NavState.SEARCH_BOX_READY)
                logger.debug("Search box matched {}", selector)
                return element
        raise SearchBoxNotFound(f"could not find search box on {self.page.url}")

    async def _submit_query(self, search_box: Any, query: str) -> None:
        self._transition(NavState.QUERY_SUBMITTING)
        logger.info("Searching for: {}", query)
        await search_box.click()
        for char in query:
            await self.page.keyboard.type(char)
            await asyncio.sleep(self.pacing.key_delay(self.rng))
        await asyncio.sleep(self.pacing.submit_pause(self.rng))
        await self.page.keyboard.press("Enter")

    async def _wait_for_results(self) -> None:
        self._transition(NavState.RESULTS_LOADING)
        await self.page.wait_for_url(
            self._is_results_or_challenge,
            timeout=self.timeout_ms,
            wait_until="domcontentloaded",
        )
        logger.info("Loaded {}", self.page.url)
        await self._handle_challenge()

        try:
            await self.page.wait_for_selector(
                self.profile.results_ready_selector,
                timeout=self.timeout_ms,
            )
        except PlaywrightTimeoutError:
            logger.debug("Results container did not appear, extracting anyway")
        self._transition(NavState.RESULTS_READY)

    async def _handle_challenge(self, *extra_urls: str | None) -> None:
        patterns = self.profile.challenge_patterns
        blocked = next(
            (url for url in (self.page.url, *extra_urls) if url and is_challenge_url(url, patterns)),
            None,
        )
        if not blocked:
            return

        resume_state = self.state
        self._transition(NavState.CHALLENGE_PRESENTED)
        if self.headless:
            logger.warning("Bot challenge at {}, switching to a visible browser", blocked)
            raise ChallengeDetected(blocked)

        logger.warning("Bot challenge at {}, please solve it in the browser window", blocked)
        await self.page.wait_for_url(
            lambda url: not is_challenge_url(url, patterns),
            timeout=self.profile.manual_solve_timeout_ms,
        )
        logger.info("Challenge cleared, continuing at {}", self.page.url)
        self._transition(resume_state)

    def _is_results_or_challenge(self, url: str) -> bool:
        return any(pattern in url for pattern in self.profile.results_patterns) or is_challenge_url(
            url, self.profile.challenge_patterns
        )

    def _timeout_for(self, state: NavState) -> int:
        if state == NavState.CHALLENGE_PRESENTED:
            return self.profile.manual_solve_timeout_ms
        return self.timeout_ms

    def _transition(self, state: NavState) -> None:
        if state != self.state:
            logger.debug("Navigator {} -> {}", self.state.value, state.value)
        self.state = state
        self.history.append(state)
