"""Browser launch and isolated session creation."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from loguru import logger

from gsearch.search.errors import EngineUnavailable
from gsearch.search.installer import ChromiumInstaller, needs_install
from gsearch.search.models import FingerprintConfig
from gsearch.search.stealth import build_init_scripts

DEFAULT_DEVICE = "Desktop Chrome"

DEFAULT_BROWSER_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--hide-scrollbars",
    "--mute-audio",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-breakpad",
    "--disable-component-extensions-with-background-pages",
    "--disable-extensions",
    "--disable-features=TranslateUI",
    "--disable-ipc-flooding-protection",
    "--disable-renderer-backgrounding",
    "--enable-features=NetworkService,NetworkServiceInProcess",
    "--force-color-profile=srgb",
    "--metrics-recording-only",
]

IGNORE_DEFAULT_ARGS = ["--enable-automation"]

CONTEXT_POLICY: dict[str, Any] = {
    "permissions": ["geolocation", "notifications"],
    "accept_downloads": True,
    "is_mobile": False,
    "has_touch": False,
    "java_script_enabled": True,
}


def resolve_context_options(
    fingerprint: FingerprintConfig,
    devices: Mapping[str, Mapping[str, Any]],
) -> dict[str, Any]:
    """Device defaults, overridden by the fingerprint, then by fixed policy."""
    device = devices.get(fingerprint.device_name) or devices.get(DEFAULT_DEVICE) or {}
    options = {k: v for k, v in device.items() if k != "default_browser_type"}
    options.update(
        locale=fingerprint.locale,
        timezone_id=fingerprint.timezone_id,
        color_scheme=fingerprint.color_scheme,
        reduced_motion=fingerprint.reduced_motion,
        forced_colors=fingerprint.forced_colors,
    )
    options.update(CONTEXT_POLICY)
    return options


class BrowserSession:
    """An isolated context and its page, owned by one query execution."""

    def __init__(self, context: Any, page: Any):
        self.context = context
        self.page = page
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self.context.close()
        except Exception as e:
            logger.debug("Ignoring error while closing browser context: {}", e)

    async def __aenter__(self) -> "BrowserSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


async def create_session(
    browser: Any,
    fingerprint: FingerprintConfig,
    storage_state: str | None,
    devices: Mapping[str, Mapping[str, Any]],
) -> BrowserSession:
    """Open a context with stealth init scripts applied, then its first page."""
    options = resolve_context_options(fingerprint, devices)
    if storage_state:
        options["storage_state"] = storage_state

    try:
        context = await browser.new_context(**options)
    except Exception as e:
        raise EngineUnavailable(f"cannot create browser context: {e}") from e

    session = BrowserSession(context, page=None)
    try:
        for script in build_init_scripts(fingerprint):
            await context.add_init_script(script)
        session.page = await context.new_page()
    except Exception as e:
        await session.close()
        raise EngineUnavailable(f"cannot open browser page: {e}") from e

    return session


class PlaywrightDriver:
    """Owns the Playwright runtime and launches Chromium processes."""

    def __init__(
        self,
        *,
        args: Sequence[str] | None = None,
        auto_install_browsers: bool = True,
        installer: ChromiumInstaller | None = None,
    ):
        self.args = list(DEFAULT_BROWSER_ARGS if args is None else args)
        self.auto_install_browsers = auto_install_browsers
        self.installer = installer or ChromiumInstaller()
        self._playwright: Any = None

    @property
    def devices(self) -> Mapping[str, Mapping[str, Any]]:
        if self._playwright is None:
            return {}
        return self._playwright.devices

    async def start(self) -> "PlaywrightDriver":
        from playwright.async_api import async_playwright

        if self._playwright is None:
            try:
                self._playwright = await async_playwright().start()
            except Exception as e:
                raise EngineUnavailable(f"cannot start Playwright: {e}") from e
        return self

    async def stop(self) -> None:
        if self._playwright is None:
            return
        playwright, self._playwright = self._playwright, None
        try:
            await playwright.stop()
        except Exception as e:
            logger.debug("Ignoring error while stopping Playwright: {}", e)

    async def __aenter__(self) -> "PlaywrightDriver":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def launch(self, *, headless: bool, timeout_ms: int) -> Any:
        """Launch Chromium, installing it once if the binary is missing."""
        logger.info("Launching browser (headless={})", headless)
        try:
            return await self._launch(headless, timeout_ms)
        except EngineUnavailable:
            raise
        except Exception as first_error:
            if not self.auto_install_browsers or not needs_install(first_error):
                raise EngineUnavailable(f"browser launch failed: {first_error}") from first_error

            logger.warning("Chromium binary missing, installing it now")
            await self.installer.install()

            try:
                return await self._launch(headless, timeout_ms)
            except Exception as second_error:
                raise EngineUnavailable(
                    f"browser launch failed after install: {second_error}"
                ) from second_error

    async def _launch(self, headless: bool, timeout_ms: int) -> Any:
        if self._playwright is None:
            raise EngineUnavailable("Playwright runtime is not started")
        return await self._playwright.chromium.launch(
            headless=headless,
            timeout=timeout_ms * 2,
            args=self.args,
            ignore_default_args=IGNORE_DEFAULT_ARGS,
        )
