"""
Command line entry point: list the stories of a running Storybook.

    storycrawler http://localhost:6006
    storycrawler http://localhost:6006 --format lines --mode attach --port 9223
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys

from .config import CrawlerConfig
from .errors import StoryCrawlerError
from .stories_browser import get_stories
from .story_types import StoryRecord

logger = logging.getLogger("storycrawler")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="storycrawler", description="List the stories of a running Storybook.")
    parser.add_argument("url", help="Base URL of the Storybook server, e.g. http://localhost:6006")
    parser.add_argument("--format", choices=("json", "lines"), default="json", help="Output format (default: json)")
    parser.add_argument("--mode", choices=("launch", "attach"), default=None, help="Launch Chrome or attach to one")
    parser.add_argument("--port", type=int, default=None, help="Chrome remote debugging port")
    parser.add_argument(
        "--registry-timeout",
        type=float,
        default=None,
        help="Seconds to wait for the Storybook registry to appear (default: wait forever)",
    )
    parser.add_argument("--no-check", action="store_true", help="Skip the HTTP reachability check")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def _apply_overrides(config: CrawlerConfig, args: argparse.Namespace) -> CrawlerConfig:
    changes: dict[str, object] = {}
    if args.mode:
        changes["mode"] = CrawlerConfig.normalize_mode(args.mode)
    if args.port:
        changes["cdp_port"] = args.port
    if args.registry_timeout is not None:
        changes["registry_timeout"] = CrawlerConfig.normalize_registry_timeout(args.registry_timeout)
    return dataclasses.replace(config, **changes) if changes else config


def format_stories(stories: list[StoryRecord], fmt: str) -> str:
    if fmt == "lines":
        return "\n".join(f"{s.kind}/{s.name}" for s in stories)
    return json.dumps([s.to_dict() for s in stories], ensure_ascii=False, indent=2)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    config = _apply_overrides(CrawlerConfig.from_env(), args)
    try:
        stories = get_stories(args.url, config, check_connection=not args.no_check)
    except StoryCrawlerError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1
    logger.info("found %d stories", len(stories))
    out = format_stories(stories, args.format)
    if out:
        sys.stdout.write(out + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
