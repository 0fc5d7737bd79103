"""cli.args

Command-line suite selection.

The surface is deliberately getopt-shaped (``-a -d -h -n -s -t``, short flags
may be combined as ``-dn``) because the flags are order sensitive: picking an
individual suite switches off 'all', and a later ``-a`` switches it back on.
argparse handles the parsing; two small actions implement the ordering rule.
"""

from __future__ import annotations

import argparse
from typing import Any, Optional, Sequence

from metrics.errors import UsageError
from metrics.models import SuiteSelection
from metrics.suites import SUITES

DESCRIPTION = """\
This script gathers a number of metrics for use in the
report generation script. Which tests are run can be
configured on the commandline. Specifically enabling
individual tests will disable the 'all' option, unless
'all' is also specified last."""


class _SelectAll(argparse.Action):
    def __call__(self, parser, namespace, values, option_string=None) -> None:
        namespace.run_all = True


class _SelectSuite(argparse.Action):
    def __call__(self, parser, namespace, values, option_string=None) -> None:
        namespace.run_all = False
        namespace.selected = set(namespace.selected or ()) | {self.const}


class SelectionParser(argparse.ArgumentParser):
    """ArgumentParser that raises :class:`UsageError` instead of exiting."""

    def error(self, message: str) -> Any:  # type: ignore[override]
        raise UsageError(message)


def build_parser(prog: Optional[str] = None) -> SelectionParser:
    parser = SelectionParser(
        prog=prog,
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.set_defaults(run_all=True, selected=set())

    parser.add_argument("-a", nargs=0, action=_SelectAll, help="Run all tests (default).")
    for key, info in sorted(SUITES.items(), key=lambda kv: kv[1].flag):
        parser.add_argument(f"-{info.flag}", nargs=0, action=_SelectSuite, const=key, help=info.help)
    parser.add_argument("-h", action="help", help="Print this help.")
    return parser


def parse_selection(argv: Sequence[str], *, parser: Optional[SelectionParser] = None) -> SuiteSelection:
    """Turn command-line flags into an immutable :class:`SuiteSelection`.

    ``-h`` prints help and exits 0 (``SystemExit``). Anything unrecognized
    raises :class:`UsageError`.
    """

    parser = parser or build_parser()
    ns = parser.parse_args(list(argv))
    return SuiteSelection(run_all=bool(ns.run_all), selected=frozenset(ns.selected))
