import random

import pytest

from gsearch.search.errors import ChallengeDetected, SearchBoxNotFound, SearchTimeout
from gsearch.search.navigator import NavState, Pacing, SearchNavigator, is_challenge_url

from fakes import FakePage

NO_DELAY = Pacing(0, 0, 0, 0)
DOMAIN = "https://www.google.com"


def _navigator(page: FakePage, *, headless: bool = True) -> SearchNavigator:
    return SearchNavigator(
        page,
        headless=headless,
        timeout_ms=5000,
        pacing=NO_DELAY,
        rng=random.Random(0),
    )


@pytest.mark.asyncio
async def test_happy_path_walks_every_state() -> None:
    page = FakePage()
    navigator = _navigator(page)

    results = await navigator.run(DOMAIN, "weather today", 5)

    assert len(results) == 5
    assert page.keyboard.typed == "weather today"
    assert page.keyboard.pressed == ["Enter"]
    assert page.url.startswith(f"{DOMAIN}/search?q=weather")
    assert navigator.state == NavState.DONE
    assert navigator.history == [
        NavState.INIT,
        NavState.HOME_LOADING,
        NavState.SEARCH_BOX_READY,
        NavState.QUERY_SUBMITTING,
        NavState.RESULTS_LOADING,
        NavState.RESULTS_READY,
        NavState.EXTRACTING,
        NavState.DONE,
    ]


@pytest.mark.asyncio
async def test_search_box_cascade_uses_later_selector() -> None:
    page = FakePage(search_box_selector="textarea[title='Search']")

    await _navigator(page).run(DOMAIN, "q", 3)

    assert page.queried_selectors == [
        "textarea[name='q']",
        "input[name='q']",
        "textarea[title='Search']",
    ]


@pytest.mark.asyncio
async def test_missing_search_box_fails() -> None:
    page = FakePage(search_box_selector="#nothing")
    navigator = _navigator(page)

    with pytest.raises(SearchBoxNotFound):
        await navigator.run(DOMAIN, "q", 3)

    assert navigator.state == NavState.FAILED


@pytest.mark.asyncio
async def test_headless_challenge_on_home_requests_escalation() -> None:
    navigator = _navigator(FakePage(challenge_home=True))

    with pytest.raises(ChallengeDetected):
        await navigator.run(DOMAIN, "q", 3)

    assert navigator.state == NavState.CHALLENGE_PRESENTED


@pytest.mark.asyncio
async def test_headless_challenge_after_submit_requests_escalation() -> None:
    navigator = _navigator(FakePage(challenge_results=True))

    with pytest.raises(ChallengeDetected):
        await navigator.run(DOMAIN, "q", 3)

    assert NavState.RESULTS_LOADING in navigator.history


@pytest.mark.asyncio
async def test_visible_challenge_waits_indefinitely_for_human() -> None:
    page = FakePage(challenge_results=True)
    navigator = _navigator(page, headless=False)

    results = await navigator.run(DOMAIN, "latest news", 3)

    assert len(results) == 3
    assert 0 in page.url_wait_timeouts
    assert NavState.CHALLENGE_PRESENTED in navigator.history
    assert navigator.state == NavState.DONE


@pytest.mark.asyncio
async def test_results_that_never_load_time_out() -> None:
    navigator = _navigator(FakePage(stuck_after_submit=True))

    with pytest.raises(SearchTimeout) as excinfo:
        await navigator.run(DOMAIN, "q", 3)

    assert excinfo.value.state == NavState.RESULTS_LOADING.value
    assert excinfo.value.timeout_ms == 5000
    assert navigator.state == NavState.FAILED


def test_challenge_detection_ignores_query_text() -> None:
    assert is_challenge_url("https://www.google.com/sorry/index?continue=x")
    assert is_challenge_url("https://www.google.com/recaptcha/api2/anchor")
    assert not is_challenge_url("https://www.google.com/search?q=captcha+sorry")
    assert not is_challenge_url("")


def test_pacing_stays_within_bounds() -> None:
    pacing = Pacing()
    rng = random.Random(3)
    delays = [pacing.key_delay(rng) for _ in range(50)]
    pauses = [pacing.submit_pause(rng) for _ in range(50)]

    assert all(0.010 <= d <= 0.030 for d in delays)
    assert all(0.100 <= p <= 0.300 for p in pauses)
