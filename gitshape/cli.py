#!/usr/bin/env python3
"""
gitshape CLI

Copy the shape of a git history into a new repository: same commits,
parents and timestamps, but empty trees, a placeholder message and,
optionally, pseudonymous identities.

Usage:
  gitshape <source> <reference> <target> [--redact] [--key <secret>]
  gitshape <source> <reference> <target> --config <file.yaml>

The redaction secret can also be given in $GITSHAPE_KEY.
"""

import argparse
import itertools
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional, TextIO

from .config import RewriteConfig
from .engine import Engine, RewriteProgress
from .gitstore import GitSourceStore, GitTargetStore
from .store import StoreError

logger = logging.getLogger(__name__)


class ProgressPrinter:
    """
    Spinner-style progress line: count and commits per second.

    Redraws at most `rate` times per second.
    """

    SPINNER = "|/-\\"

    def __init__(self, stream: Optional[TextIO] = None, rate: float = 10.0):
        self.stream = stream or sys.stderr
        self.interval = 1.0 / rate
        self._last_draw: Optional[float] = None
        self._frames = itertools.cycle(self.SPINNER)

    def __call__(self, progress: RewriteProgress):
        now = time.monotonic()
        if self._last_draw is not None and now - self._last_draw < self.interval:
            return
        self._last_draw = now
        self.stream.write(f"\r{next(self._frames)} {progress.count:>7} @ {progress.rate:.0f}/s")
        self.stream.flush()

    def close(self):
        if self._last_draw is not None:
            self.stream.write("\n")
            self.stream.flush()


def fail(message: str):
    """Print a diagnostic and exit non-zero."""
    print(f"gitshape: error: {message}", file=sys.stderr)
    sys.exit(1)


def load_config(args) -> RewriteConfig:
    """Build the run config from the config file, flags and environment."""
    try:
        config = RewriteConfig.from_file(args.config) if args.config else RewriteConfig()
        config = config.with_overrides(
            redact=True if args.redact else None,
            key=args.key,
            branch=args.branch,
            message=args.message,
        )
    except (OSError, ValueError, TypeError) as e:
        fail(f"invalid configuration: {e}")
    return config.with_env()


def cmd_rewrite(args):
    """Rewrite the history of a reference into a new repository."""
    config = load_config(args)
    logger.debug(f"Config: {config.to_dict()}")

    try:
        source = GitSourceStore.open(args.source)
        start_id = source.resolve(args.reference)
        target = GitTargetStore.create(args.target)
    except StoreError as e:
        fail(str(e))

    engine = Engine(
        source,
        target,
        redactor=config.make_redactor(),
        branch=config.branch,
        message=config.message,
    )

    progress = None
    if not args.quiet:
        progress = ProgressPrinter()
        engine.set_progress_callback(progress)

    try:
        result = engine.rewrite(start_id)
    finally:
        if progress:
            progress.close()

    if not result.success:
        fail(result.error)

    if not args.quiet:
        print(f"Rewrote {result.commits_written} commits in {result.elapsed:.1f}s")
        print(f"{args.target}: {result.branch} -> {result.branch_target}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitshape",
        description="Copy the shape of a git history without its content",
    )
    parser.add_argument("source", type=Path, help="Source repository")
    parser.add_argument("reference", help="Branch, tag or commit-ish to copy")
    parser.add_argument("target", type=Path, help="New repository to create")
    parser.add_argument("--redact", action="store_true",
                        help="Replace names and emails with keyed pseudonyms")
    parser.add_argument("--key", help="Redaction secret (default: $GITSHAPE_KEY or a built-in secret)")
    parser.add_argument("--config", type=Path, help="YAML config file")
    parser.add_argument("--branch", help="Branch to create in the target (default: master)")
    parser.add_argument("--message", help="Placeholder commit message (default: redacted)")
    parser.add_argument("-q", "--quiet", action="store_true", help="No progress or summary output")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="More logging (-v info, -vv debug)")
    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    cmd_rewrite(args)


if __name__ == "__main__":
    main()
