"""Chromium download for a Playwright runtime that has no browser binary yet."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence

from loguru import logger

from gsearch.search.errors import EngineUnavailable

# One download at a time, even across drivers.
_DOWNLOAD_LOCK = asyncio.Lock()

_MISSING_BINARY_HINTS = (
    "executable doesn't exist",
    "browser has not been found",
    "please run the following command",
)


def needs_install(error: BaseException) -> bool:
    """True when a launch failed only because Chromium was never downloaded."""
    message = str(error).lower()
    return any(hint in message for hint in _MISSING_BINARY_HINTS)


class ChromiumInstaller:
    """Runs ``playwright install chromium`` for the current interpreter."""

    def __init__(self, *, timeout_s: float = 600, command: Sequence[str] | None = None):
        self.timeout_s = timeout_s
        self.command = list(command or (sys.executable, "-m", "playwright", "install", "chromium"))

    async def install(self) -> None:
        """Download Chromium or raise EngineUnavailable with the installer's last output."""
        async with _DOWNLOAD_LOCK:
            logger.info("Running {}", " ".join(self.command))
            process = await asyncio.create_subprocess_exec(
                *self.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
            try:
                output, _ = await asyncio.wait_for(process.communicate(), timeout=self.timeout_s)
            except asyncio.TimeoutError as e:
                process.kill()
                raise EngineUnavailable(
                    f"chromium install timed out after {self.timeout_s:g}s"
                ) from e

        text = output.decode("utf-8", errors="replace").strip() if output else ""
        if process.returncode != 0:
            last_line = text.splitlines()[-1] if text else f"exit code {process.returncode}"
            raise EngineUnavailable(f"chromium install failed: {last_line}")
        logger.debug("Chromium install output:\n{}", text)
