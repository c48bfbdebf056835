"""
pathdraw command line.

    pathdraw 10.0.11.11 10.0.12.12
    pathdraw -v 2001:db8:11::11 2001:db8:12::12
    pathdraw --log /tmp/pathdraw.json 10.0.11.11 10.0.12.12
    pathdraw -v                       # version

Usage problems (wrong number of addresses, unknown options) print the
usage line and exit 0. Fatal lookup errors print to stderr and exit
with the error's code; nothing is drawn.
"""

from __future__ import annotations
import argparse
import sys
from typing import Optional

from rich.console import Console
from rich.markup import escape

from . import __version__
from .diagnostics import RunDiagnostic, dump_run_summary, setup_logging
from .errors import ExitCode, PathDrawError
from .layout import classify
from .render import render
from .resolver import resolve_pair


class UsageParser(argparse.ArgumentParser):
    """Argument errors print usage and exit cleanly."""

    def error(self, message: str):
        self.print_usage()
        self.exit(ExitCode.SUCCESS)


def build_parser() -> UsageParser:
    parser = UsageParser(
        prog="pathdraw",
        description="Draw the path between two addresses as this host routes it.",
        epilog=(
            "Examples:\n"
            "  pathdraw 10.0.11.11 10.0.12.12\n"
            "  pathdraw -v 10.0.11.11 10.0.12.12\n"
            "  pathdraw --log /tmp/pathdraw.json 10.0.11.11 10.0.12.12\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("addresses", nargs="*", metavar="ADDRESS",
                        help="Source and destination address")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Alone: print the version. With addresses: "
                             "log each lookup to stderr")
    parser.add_argument("--debug", action="store_true",
                        help="Log every command and parse to stderr")
    parser.add_argument("--log", default=None, metavar="FILE",
                        help="Write full diagnostic JSON to FILE "
                             "(and the debug log to FILE.log)")
    return parser


def report_error(console: Console, error: PathDrawError, verbose: bool = False):
    console.print(f"[#ff4444]Error:[/] {escape(error.message)}")
    if error.suggestion:
        console.print(f"[#ffcc00]Suggestion:[/] {escape(error.suggestion)}")
    if verbose:
        for key, value in error.details.items():
            console.print(f"  {escape(str(key))}: {escape(str(value))}")


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.addresses and args.verbose:
        print(f"pathdraw {__version__}")
        return ExitCode.SUCCESS
    if len(args.addresses) != 2:
        parser.print_usage()
        return ExitCode.SUCCESS

    source, destination = args.addresses
    logger = setup_logging(args.log, debug=args.debug, verbose=args.verbose)
    diag = RunDiagnostic(source=source, destination=destination)

    try:
        pair = resolve_pair(source, destination, diagnostic=diag)
    except PathDrawError as e:
        diag.error = e.message
        logger.debug(f"Lookup failed: {e.format_error(verbose=True)}")
        report_error(Console(stderr=True), e, verbose=args.debug)
        if args.log:
            diag.dump_json(args.log)
        return e.exit_code

    layout = classify(pair.source, pair.destination)
    logger.info(f"Layout: {layout.family.value}, "
                f"{len(layout.boxes())} boxes, device '{layout.label}'")
    sys.stdout.write(render(layout, pair, pair.family))

    logger.info("\n" + dump_run_summary(diag))
    if args.log:
        diag.dump_json(args.log)
        logger.info(f"Diagnostics written to {args.log}")
    return ExitCode.SUCCESS


if __name__ == "__main__":
    sys.exit(main())
