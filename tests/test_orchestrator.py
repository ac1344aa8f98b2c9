import json
import random
from pathlib import Path

import pytest

from gsearch.config.schema import Config, EngineConfig, PacingConfig, StateConfig
from gsearch.search.errors import EngineUnavailable
from gsearch.search.models import FAILED_RESULT_TITLE, SearchOptions
from gsearch.search.orchestrator import SearchOrchestrator
from gsearch.search.state import fingerprint_path_for

from fakes import FakeDriver, FakePage, make_rows


def _config(policy: str = "per_query") -> Config:
    return Config(
        engine=EngineConfig(domains=["https://www.google.com"]),
        pacing=PacingConfig(
            key_delay_min_ms=0,
            key_delay_max_ms=0,
            submit_pause_min_ms=0,
            submit_pause_max_ms=0,
        ),
        state=StateConfig(policy=policy),
    )


def _orchestrator(driver: FakeDriver, policy: str = "per_query") -> SearchOrchestrator:
    return SearchOrchestrator(_config(policy), driver_factory=lambda: driver, rng=random.Random(0))


def _options(tmp_path: Path, **kwargs) -> SearchOptions:
    return SearchOptions(state_file=str(tmp_path / "browser-state.json"), timeout_ms=5000, **kwargs)


def _seed_state(state_file: Path, domain: str) -> None:
    state_file.write_text('{"cookies": [], "origins": []}', encoding="utf-8")
    fingerprint_path_for(state_file).write_text(
        json.dumps({"lastGoodDomain": domain}),
        encoding="utf-8",
    )


@pytest.mark.asyncio
async def test_end_to_end_two_queries(tmp_path) -> None:
    driver = FakeDriver()
    queries = ["weather today", "latest news"]

    responses = await _orchestrator(driver).search_batch(queries, _options(tmp_path, limit=5))

    assert len(responses) == 2
    for query, response in zip(queries, responses):
        assert response.query == query
        assert response.ok
        assert 0 < len(response.results) <= 5
        assert all(r.title and r.link for r in response.results)

    assert driver.launches == [True]
    assert driver.browsers[0].closed is True
    assert all(ctx.closed for ctx in driver.browsers[0].contexts)
    assert driver.stopped is True


@pytest.mark.asyncio
async def test_headless_challenge_escalates_to_visible_exactly_once(tmp_path) -> None:
    driver = FakeDriver(lambda headless, options: FakePage(challenge_home=headless))

    response = await _orchestrator(driver).search("weather today", _options(tmp_path))

    assert response.ok
    assert driver.launches == [True, False]
    assert all(browser.closed for browser in driver.browsers)
    assert driver.browsers[0].contexts[0].closed is True


@pytest.mark.asyncio
async def test_persistent_visible_challenge_does_not_loop(tmp_path) -> None:
    driver = FakeDriver(
        lambda headless, options: FakePage(challenge_home=True, solve_challenges=False)
    )

    response = await _orchestrator(driver).search("q", _options(tmp_path))

    assert not response.ok
    assert response.results[0].title == FAILED_RESULT_TITLE
    assert driver.launches == [True, False]


@pytest.mark.asyncio
async def test_visible_mode_never_escalates(tmp_path) -> None:
    driver = FakeDriver(lambda headless, options: FakePage(challenge_results=True))

    response = await _orchestrator(driver).search("q", _options(tmp_path, visible=True))

    assert response.ok
    assert driver.launches == [False]


@pytest.mark.asyncio
async def test_batch_isolation_keeps_order_and_siblings(tmp_path) -> None:
    _seed_state(tmp_path / "browser-state-1.json", "https://broken.example")
    driver = FakeDriver()
    queries = ["first", "second", "third"]

    responses = await _orchestrator(driver).search_batch(queries, _options(tmp_path))

    assert [r.query for r in responses] == queries
    assert responses[0].ok and responses[2].ok
    assert not responses[1].ok
    assert responses[1].results[0].link == ""
    assert "search box" in responses[1].results[0].snippet
    assert all(r.title and r.link for r in responses[0].results + responses[2].results)
    assert all(ctx.closed for ctx in driver.browsers[0].contexts)


@pytest.mark.asyncio
async def test_per_query_state_files_are_written(tmp_path) -> None:
    driver = FakeDriver()

    await _orchestrator(driver).search_batch(["a", "b"], _options(tmp_path))

    for name in ("browser-state", "browser-state-1"):
        state_file = tmp_path / f"{name}.json"
        sidecar = json.loads(fingerprint_path_for(state_file).read_text(encoding="utf-8"))
        assert state_file.exists()
        assert sidecar["lastGoodDomain"] == "https://www.google.com"
        assert sidecar["fingerprint"]["deviceName"]


@pytest.mark.asyncio
async def test_shared_policy_uses_one_state_file(tmp_path) -> None:
    driver = FakeDriver()

    await _orchestrator(driver, policy="shared").search_batch(["a", "b"], _options(tmp_path))

    assert (tmp_path / "browser-state.json").exists()
    assert not (tmp_path / "browser-state-1.json").exists()


@pytest.mark.asyncio
async def test_saved_identity_is_reused(tmp_path) -> None:
    state_file = tmp_path / "browser-state.json"
    state_file.write_text('{"cookies": [], "origins": []}', encoding="utf-8")
    fingerprint_path_for(state_file).write_text(
        json.dumps(
            {
                "fingerprint": {
                    "deviceName": "Desktop Safari",
                    "locale": "en-AU",
                    "timezoneId": "Australia/Sydney",
                    "colorScheme": "dark",
                    "reducedMotion": "no-preference",
                    "forcedColors": "none",
                },
                "lastGoodDomain": "https://www.google.com.au",
            }
        ),
        encoding="utf-8",
    )
    driver = FakeDriver()

    await _orchestrator(driver).search("q", _options(tmp_path, locale="fr-FR"))

    context = driver.browsers[0].contexts[0]
    assert context.options["storage_state"] == str(state_file)
    assert context.options["locale"] == "en-AU"
    assert context.options["user_agent"] == "Desktop Safari UA"
    assert context.page.visits == ["https://www.google.com.au"]


@pytest.mark.asyncio
async def test_no_save_state_leaves_disk_untouched(tmp_path) -> None:
    driver = FakeDriver()

    response = await _orchestrator(driver).search("q", _options(tmp_path, save_state=False))

    assert response.ok
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_persistence_failure_does_not_fail_query(tmp_path) -> None:
    driver = FakeDriver(storage_error=OSError("disk full"))

    response = await _orchestrator(driver).search("q", _options(tmp_path, limit=3))

    assert response.ok
    assert len(response.results) == 3


@pytest.mark.asyncio
async def test_launch_failure_degrades_every_query(tmp_path) -> None:
    driver = FakeDriver(launch_error=EngineUnavailable("no chromium"))

    responses = await _orchestrator(driver).search_batch(["a", "b"], _options(tmp_path))

    assert [r.query for r in responses] == ["a", "b"]
    assert all(not r.ok for r in responses)
    assert "no chromium" in responses[0].results[0].snippet
    assert driver.stopped is True


@pytest.mark.asyncio
async def test_caller_supplied_browser_is_not_closed(tmp_path) -> None:
    driver = FakeDriver()
    caller_browser = await driver.launch(headless=True, timeout_ms=1000)
    driver.launches.clear()

    await _orchestrator(driver).search_batch(["a"], _options(tmp_path), browser=caller_browser)

    assert driver.launches == []
    assert caller_browser.closed is False
    assert caller_browser.contexts[0].closed is True


@pytest.mark.asyncio
async def test_result_count_never_exceeds_limit(tmp_path) -> None:
    driver = FakeDriver(lambda headless, options: FakePage(rows={".g": make_rows(20)}))

    response = await _orchestrator(driver).search("q", _options(tmp_path, limit=7))

    assert len(response.results) == 7


@pytest.mark.asyncio
async def test_empty_batch_is_rejected() -> None:
    with pytest.raises(ValueError, match="At least one"):
        await _orchestrator(FakeDriver()).search_batch([])
