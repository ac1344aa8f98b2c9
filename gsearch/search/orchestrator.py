"""Concurrent query execution over a shared browser process."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from loguru import logger

from gsearch.search.errors import ChallengeDetected, EngineUnavailable, PersistenceFailure, SearchError
from gsearch.search.fingerprint import resolve_fingerprint
from gsearch.search.models import SearchOptions, SearchResponse
from gsearch.search.navigator import EngineProfile, Pacing, SearchNavigator
from gsearch.search.session import BrowserSession, PlaywrightDriver, create_session
from gsearch.search.state import StateStore, state_file_for_index

if TYPE_CHECKING:
    from gsearch.config.schema import Config


class SearchOrchestrator:
    """Run queries in isolated sessions and collect one response per query.

    A failing query yields a degraded response and never affects its siblings.
    The shared browser is closed when the batch ends unless the caller passed
    its own.
    """

    def __init__(
        self,
        config: "Config | None" = None,
        *,
        store: StateStore | None = None,
        driver_factory: Callable[[], Any] | None = None,
        rng: random.Random | None = None,
    ):
        from gsearch.config.schema import Config

        self.config = config or Config()
        self.store = store or StateStore()
        self.profile = EngineProfile.from_config(self.config.engine)
        self.pacing = Pacing.from_config(self.config.pacing)
        self.domains = tuple(self.config.engine.domains)
        self.rng = rng or random.Random()
        self._driver_factory = driver_factory or self._default_driver

    def default_options(self, **overrides: Any) -> SearchOptions:
        return SearchOptions.from_config(self.config, **overrides)

    async def search(
        self,
        query: str,
        options: SearchOptions | None = None,
        *,
        browser: Any = None,
    ) -> SearchResponse:
        """Search a single query."""
        responses = await self.search_batch([query], options, browser=browser)
        return responses[0]

    async def search_batch(
        self,
        queries: Sequence[str],
        options: SearchOptions | None = None,
        *,
        browser: Any = None,
    ) -> list[SearchResponse]:
        """Search all queries concurrently; output order matches input order."""
        if not queries:
            raise ValueError("At least one search query is required")

        opts = options or self.default_options()
        logger.info("Starting {} searches", len(queries))

        driver = self._driver_factory()
        try:
            await driver.start()
        except EngineUnavailable as e:
            logger.error("Browser engine unavailable: {}", e)
            return [SearchResponse.failed(query, e) for query in queries]

        try:
            shared = browser
            if shared is None:
                try:
                    shared = await driver.launch(headless=not opts.visible, timeout_ms=opts.timeout_ms)
                except EngineUnavailable as e:
                    logger.error("Browser engine unavailable: {}", e)
                    return [SearchResponse.failed(query, e) for query in queries]

            try:
                responses = await asyncio.gather(
                    *(
                        self._run_query(driver, shared, query, opts, index)
                        for index, query in enumerate(queries)
                    )
                )
            finally:
                if browser is None:
                    await _close_browser(shared)
            return list(responses)
        finally:
            await driver.stop()

    def state_file_for(self, state_file: str, index: int) -> str:
        if self.config.state.policy == "shared":
            return state_file
        return state_file_for_index(state_file, index)

    async def _run_query(
        self,
        driver: Any,
        shared_browser: Any,
        query: str,
        options: SearchOptions,
        index: int,
    ) -> SearchResponse:
        state_file = self.state_file_for(options.state_file, index)
        headless = not options.visible
        try:
            try:
                return await self._attempt(
                    driver, shared_browser, query, options, state_file, headless=headless
                )
            except ChallengeDetected:
                logger.warning("Retrying '{}' in a visible browser", query)
                return await self._attempt(
                    driver, None, query, options, state_file, headless=False
                )
        except SearchError as e:
            logger.error("Search for '{}' failed ({}): {}", query, e.reason, e)
            return SearchResponse.failed(query, e)
        except Exception as e:
            logger.exception("Unexpected error while searching '{}'", query)
            return SearchResponse.failed(query, e)

    async def _attempt(
        self,
        driver: Any,
        browser: Any,
        query: str,
        options: SearchOptions,
        state_file: str,
        *,
        headless: bool,
    ) -> SearchResponse:
        owned_browser = None
        if browser is None:
            owned_browser = browser = await driver.launch(
                headless=headless, timeout_ms=options.timeout_ms
            )

        try:
            storage_state, saved = self.store.load(state_file)
            fingerprint = resolve_fingerprint(saved.fingerprint, options.locale)
            if saved.fingerprint is None:
                saved.fingerprint = fingerprint
            domain = saved.last_good_domain or self.rng.choice(self.domains)
            saved.last_good_domain = domain

            session = await create_session(browser, fingerprint, storage_state, driver.devices)
            try:
                if options.save_state:
                    await self._persist(session, state_file, saved)

                navigator = SearchNavigator(
                    session.page,
                    headless=headless,
                    timeout_ms=options.timeout_ms,
                    profile=self.profile,
                    pacing=self.pacing,
                    rng=self.rng,
                )
                results = await navigator.run(domain, query, options.limit)

                if options.save_state:
                    await self._persist(session, state_file, saved)
                return SearchResponse(query=query, results=results[: options.limit])
            finally:
                await session.close()
        finally:
            if owned_browser is not None:
                await _close_browser(owned_browser)

    async def _persist(self, session: BrowserSession, state_file: str, saved) -> None:
        try:
            await self.store.save(session.context, state_file, saved)
        except PersistenceFailure as e:
            logger.warning("Could not save browser state to {}: {}", state_file, e)

    def _default_driver(self) -> PlaywrightDriver:
        return PlaywrightDriver(
            args=self.config.browser.args,
            auto_install_browsers=self.config.browser.auto_install_browsers,
        )


async def _close_browser(browser: Any) -> None:
    try:
        await browser.close()
    except Exception as e:
        logger.debug("Ignoring error while closing browser: {}", e)


async def search(
    query: str,
    options: SearchOptions | None = None,
    *,
    config: "Config | None" = None,
) -> SearchResponse:
    """Search one query with a throwaway orchestrator."""
    return await SearchOrchestrator(config).search(query, options)


async def search_batch(
    queries: Sequence[str],
    options: SearchOptions | None = None,
    *,
    config: "Config | None" = None,
) -> list[SearchResponse]:
    """Search several queries concurrently with a throwaway orchestrator."""
    return await SearchOrchestrator(config).search_batch(queries, options)
