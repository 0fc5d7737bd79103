#!/usr/bin/env python3
"""
Gather container runtime metrics for the report generator.

Runs a set of the metrics tests, configured to produce meaningful and
repeatable results rather than quick ones. If one test fails, the rest still
run; the results land in the results directory for the report stage.

Usage:
  python gather_metrics.py            # all tests
  python gather_metrics.py -d         # density tests only (with KSM if available)
  python gather_metrics.py -t -s      # time and storage tests
  python gather_metrics.py -h

Configuration is read from the environment and an optional .env file at the
repo root (see metrics/settings.py).
"""

from __future__ import annotations

import sys
from typing import Optional, Sequence

from cli.args import build_parser, parse_selection
from metrics.errors import ConfigError, UsageError
from metrics.settings import load_settings
from metrics.wiring import build_harness, load_env


def main(argv: Optional[Sequence[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)

    # Always load .env from repo root so every entrypoint sees the same config
    load_env()

    parser = build_parser(prog="gather_metrics.py")
    try:
        selection = parse_selection(argv, parser=parser)
    except UsageError as e:
        parser.print_help(sys.stderr)
        print(f"\nERROR: Failed to parse arguments: {e}", file=sys.stderr)
        return 2

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    harness = build_harness(settings)
    harness.onetime_init()
    result = harness.run(selection)
    return harness.exit_code(result)


if __name__ == "__main__":
    raise SystemExit(main())
