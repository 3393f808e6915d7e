"""Command line wiring for the Google News resolver.

Resolves every link given on the command line and prints one
``original -> resolved`` line per link.

Updates: v0.1 - 2026-10-15 - Added argv-driven resolution entry point.
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional, Sequence

from .models import CostEnvironment
from .proxy import RotatingProxyProvider
from .resolver import GoogleNewsResolver

logger = logging.getLogger(__name__)

APP_VERSION = "0.2"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gnews-resolver",
        description="Resolve Google News RSS links to publisher article URLs.",
    )
    parser.add_argument("urls", nargs="+", help="Google News article links")
    parser.add_argument("--no-persist", action="store_true", help="do not read or write the cache file")
    parser.add_argument("--cloud", action="store_true", help="use cloud/production tuning")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Resolve the links in ``argv``; returns a process exit code."""

    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    environment = CostEnvironment.detect()
    if args.cloud:
        environment = CostEnvironment.for_cloud(True)

    lines: List[str] = []
    with GoogleNewsResolver(
        RotatingProxyProvider.from_env(),
        environment=environment,
        enable_persistence=not args.no_persist,
    ) as resolver:
        for url in args.urls:
            lines.append(f"{url} -> {resolver.resolve_url(url)}")
    for line in lines:
        print(line)
    return 0


__all__ = ["APP_VERSION", "build_parser", "main"]
