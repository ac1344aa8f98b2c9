"""Command-line interface: gsearch QUERY [QUERY ...]."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from pathlib import Path

from loguru import logger

from gsearch.config.loader import load_config
from gsearch.search.models import SearchResponse
from gsearch.search.orchestrator import SearchOrchestrator
from gsearch.utils.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gsearch",
        description="Search Google through a real browser and print the results.",
    )
    parser.add_argument("queries", nargs="*", help="One or more search queries")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show the browser window and enable debug logs",
    )
    parser.add_argument("--log", action="store_true", help="Print progress logs to stderr")
    parser.add_argument("--log-file", type=Path, help="Also write debug logs to this file")
    parser.add_argument("--limit", type=int, help="Maximum results per query")
    parser.add_argument("--timeout", type=int, dest="timeout_ms", help="Timeout in milliseconds")
    parser.add_argument("--state-file", help="Browser state file (identity key)")
    parser.add_argument(
        "--no-save-state",
        action="store_true",
        help="Do not persist cookies and fingerprint after the run",
    )
    parser.add_argument("--locale", help="Locale for a newly created fingerprint, e.g. en-GB")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--config", type=Path, help="Path to config.json")
    return parser


def format_responses(responses: Sequence[SearchResponse]) -> str:
    """Render responses the way the terminal output shows them."""
    lines: list[str] = []
    multiple = len(responses) > 1
    for response in responses:
        if multiple:
            lines.append("")
            lines.append(f"=== Results for: {response.query} ===")
        if not response.results:
            lines.append("No results found.")
            continue
        for i, result in enumerate(response.results, start=1):
            lines.append(f"{i}. {result.title}")
            lines.append(f"   {result.link}")
            lines.append(f"   {result.snippet}")
            lines.append("")
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.queries:
        parser.print_usage(sys.stderr)
        print("Usage: gsearch <query1> [query2] ... [--debug] [--log]", file=sys.stderr)
        return 1

    level = "DEBUG" if args.debug else ("INFO" if args.log else "WARNING")
    setup_logging(level, args.log_file)

    config = load_config(args.config)
    orchestrator = SearchOrchestrator(config)
    try:
        options = orchestrator.default_options(
            limit=args.limit,
            timeout_ms=args.timeout_ms,
            state_file=args.state_file,
            save_state=False if args.no_save_state else None,
            visible=True if args.debug else None,
            locale=args.locale,
        )
    except ValueError as e:
        parser.error(str(e))

    logger.info("Starting search for: {}", ", ".join(args.queries))

    try:
        responses = asyncio.run(orchestrator.search_batch(args.queries, options))
    except Exception as e:
        logger.exception("Search batch failed")
        print(f"Error during search: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps([r.to_dict() for r in responses], ensure_ascii=False, indent=2))
    else:
        print(format_responses(responses))
    return 0
