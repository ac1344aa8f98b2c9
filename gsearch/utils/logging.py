"""Loguru sink setup shared by the CLI and the MCP server."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message}"


def setup_logging(level: str = "WARNING", log_file: Path | None = None) -> None:
    """Route logs to stderr; stdout carries results and MCP stdio frames."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_FORMAT)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level="DEBUG",
            format=_FORMAT,
            rotation="10 MB",
            retention=3,
            encoding="utf-8",
        )
