from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import httpx
import structlog
import uvicorn

from animestream.domain.entities.extraction import ExtractionSuccess
from animestream.infrastructure.browser.playwright_session import (
    PlaywrightSessionFactory,
)
from animestream.infrastructure.config import AppConfig, load_config
from animestream.infrastructure.extraction.engine import VideoExtractor
from animestream.infrastructure.extraction.verify import verify_video_url
from animestream.infrastructure.logging.setup import configure_logging
from animestream.infrastructure.sources.analyzer import SourceAnalyzer
from animestream.interfaces.api.presenter import render_result
from animestream.interfaces.app import create_app

log = structlog.get_logger(__name__)


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="animestream")

    # Config wiring flags (shared by all commands)
    parser.add_argument("--config", default=None, help="Path to YAML config file.")
    parser.add_argument("--dotenv", default=None, help="Path to .env file.")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )
    parser.add_argument(
        "--headful",
        action="store_true",
        help="Show the browser window (disables headless mode).",
    )

    commands = parser.add_subparsers(dest="command")

    serve = commands.add_parser("serve", help="Run the HTTP API (default).")
    serve.add_argument("--host", default=None, help="Bind host (overrides HOST env).")
    serve.add_argument(
        "--port", default=None, type=int, help="Bind port (overrides PORT env)."
    )

    extract = commands.add_parser("extract", help="Extract video URLs from embeds.")
    extract.add_argument("embed_urls", nargs="+", metavar="URL")
    extract.add_argument(
        "--verify",
        action="store_true",
        help="HEAD-check every extracted URL.",
    )

    analyze = commands.add_parser("analyze", help="Rank the mirrors of a listing.")
    analyze.add_argument(
        "listing",
        help="JSON file: {language: {mirror: [embed_url, ...]}}.",
    )
    analyze.add_argument("--language", required=True)

    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.command is None:
        args.command = "serve"
        args.host = None
        args.port = None
    return args


def _build_config(args: argparse.Namespace) -> AppConfig:
    cli_overrides: dict[str, Any] = {}
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format
    if args.headful:
        cli_overrides["playwright_headless"] = False

    return load_config(
        config_path=Path(args.config) if args.config else None,
        dotenv_path=Path(args.dotenv) if args.dotenv else None,
        cli_overrides=cli_overrides,
    )


async def _run_extract(
    config: AppConfig, embed_urls: list[str], *, verify: bool
) -> list[dict[str, Any]]:
    sessions = PlaywrightSessionFactory(
        headless=config.playwright_headless,
        stealth=config.playwright_stealth,
    )
    extractor = VideoExtractor(sessions, config.extraction)
    rows: list[dict[str, Any]] = []
    try:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(config.http_timeout_seconds),
            headers={"User-Agent": config.http_user_agent},
        ) as client:
            for position, embed_url in enumerate(embed_urls):
                if position > 0:
                    await asyncio.sleep(config.extraction.batch_delay_seconds)
                result = await extractor.extract_video_url(embed_url)
                row = {"embed_url": embed_url, **render_result(result)}
                if verify and isinstance(result, ExtractionSuccess):
                    row["verified"] = await verify_video_url(
                        client,
                        result.video_url,
                        embed_url=embed_url,
                        timeout=config.http_timeout_seconds,
                    )
                rows.append(row)
    finally:
        await sessions.cleanup()
    return rows


def _run_analyze(
    config: AppConfig, listing_path: Path, language: str
) -> dict[str, Any]:
    listing = json.loads(listing_path.read_text(encoding="utf-8"))
    if not isinstance(listing, dict):
        raise ValueError(f"Listing must be a JSON object, got: {type(listing)!r}")
    analyzer = SourceAnalyzer(
        fast_providers=config.sources.fast_providers,
        slow_providers=config.sources.slow_providers,
    )
    analyses = analyzer.analyze_all_sources(listing, language)
    return analyzer.log_report(analyses, language)


def start(argv: Iterable[str] | None = None) -> int:
    """Process entrypoint: load config once, then dispatch the command."""
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)
    config = _build_config(args)
    log_config = configure_logging(config)

    if args.command == "extract":
        rows = asyncio.run(
            _run_extract(config, args.embed_urls, verify=args.verify)
        )
        print(json.dumps(rows, indent=2))
        return 0 if all(row["success"] for row in rows) else 1

    if args.command == "analyze":
        report = _run_analyze(config, Path(args.listing), args.language)
        print(json.dumps(report, indent=2))
        return 0 if report["sources"] else 1

    host = args.host or os.getenv("HOST", "127.0.0.1")
    port = int(args.port or os.getenv("PORT", "7980"))
    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_config=log_config,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(start())
