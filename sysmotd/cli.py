"""Message-of-the-day dashboard.

Collects every configured segment concurrently and prints them as one frame.

Usage:
    uv run sysmotd
    uv run sysmotd --config path/to/config.toml --strict
    uv run sysmotd --dump-config > ~/.config/sysmotd/config.toml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from sysmotd.config import dump_default_config, load_config
from sysmotd.errors import RenderError, SegmentFailedError
from sysmotd.pipeline import Pipeline
from sysmotd.segments import build_segments
from sysmotd.terminal import Terminal, color_enabled

log = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="sysmotd: %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Print a system status dashboard (message of the day).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--dump-config", action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    parser.add_argument(
        "--strict", action="store_true", default=None,
        help="Fail instead of showing 'unavailable' when a segment fails",
    )
    parser.add_argument(
        "--timeout", type=float, default=None, metavar="SECONDS",
        help="Per-segment collection timeout (default: 5)",
    )
    parser.add_argument(
        "--no-color", action="store_true",
        help="Disable ANSI colours",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log segment timings and failures to stderr",
    )
    args = parser.parse_args(argv)

    if args.dump_config:
        sys.stdout.write(dump_default_config())
        return 0

    _setup_logging(args.verbose)
    config = load_config(args.config)
    if args.timeout is not None:
        config["timeout"] = args.timeout
    if args.strict is not None:
        config["strict"] = args.strict

    try:
        segments = build_segments(config)
    except ValueError as e:
        print(f"sysmotd: invalid configuration: {e}", file=sys.stderr)
        return 1

    color_mode = "never" if args.no_color else str(config.get("color", "auto"))
    terminal = Terminal(sys.stdout, color=color_enabled(color_mode, sys.stdout))
    pipeline = Pipeline(
        segments,
        terminal,
        timeout=float(config["timeout"]),
        strict=bool(config["strict"]),
    )

    try:
        result = pipeline.run()
    except SegmentFailedError as e:
        print(f"sysmotd: {e.segment}: {e.reason}", file=sys.stderr)
        return 1
    except RenderError as e:
        print(f"sysmotd: render failed: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130

    log.debug(
        "painted %d rows, %d segment(s) unavailable",
        result.total_height,
        len(result.failures),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
