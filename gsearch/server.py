"""MCP server exposing the search tool over stdio or streamable HTTP."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from loguru import logger
from mcp.server.fastmcp import FastMCP

from gsearch.config.loader import load_config
from gsearch.config.schema import Config
from gsearch.tool import GoogleSearchTool
from gsearch.utils.logging import setup_logging

SERVER_NAME = "gsearch"


def create_server(
    config: Config | None = None,
    *,
    tool: GoogleSearchTool | None = None,
    visible: bool = False,
) -> FastMCP:
    """Build a FastMCP server with the `search` tool registered."""
    search_tool = tool or GoogleSearchTool(config, visible=visible)
    server = FastMCP(SERVER_NAME)

    @server.tool(name=search_tool.name, description=search_tool.description)
    async def search(
        queries: list[str],
        limit: int | None = None,
        timeout_ms: int | None = None,
        locale: str | None = None,
    ) -> str:
        return await search_tool.execute(
            queries,
            limit=limit,
            timeoutMs=timeout_ms,
            locale=locale,
        )

    return server


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gsearch-mcp", description="gsearch MCP server")
    parser.add_argument("--http", action="store_true", help="Serve streamable HTTP instead of stdio")
    parser.add_argument("--host", default="localhost", help="HTTP bind host")
    parser.add_argument("--port", type=int, default=3333, help="HTTP port")
    parser.add_argument("--debug", action="store_true", help="Show the browser window")
    parser.add_argument("--log", action="store_true", help="Print progress logs to stderr")
    parser.add_argument("--log-file", type=Path, help="Also write debug logs to this file")
    parser.add_argument("--config", type=Path, help="Path to config.json")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    level = "DEBUG" if args.debug else ("INFO" if args.log else "WARNING")
    setup_logging(level, args.log_file)

    logger.info("Initializing gsearch MCP server")
    if args.debug:
        logger.debug("Debug mode enabled, the browser window will be visible")

    server = create_server(load_config(args.config), visible=args.debug)
    try:
        if args.http:
            server.settings.host = args.host
            server.settings.port = args.port
            logger.info("Streamable HTTP server listening on {}:{}", args.host, args.port)
            server.run(transport="streamable-http")
        else:
            logger.info("Stdio server started")
            server.run()
    except Exception as e:
        logger.error("Server error: {}", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
