"""Trellis CLI — inspect URL trees and resolve URLs against a route table.

Entry point registered as ``trellis`` in ``pyproject.toml``::

    [project.scripts]
    trellis = "trellis.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``trellis`` command."""
    parser = argparse.ArgumentParser(
        prog="trellis",
        description="Trellis — URL trees, redirects and route recognition.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log resolution steps to stderr")
    subparsers = parser.add_subparsers(dest="command")

    # -- trellis parse ----------------------------------------------------
    parse_parser = subparsers.add_parser("parse", help="Parse a URL and show its segment tree")
    parse_parser.add_argument("url", help="URL to parse (e.g. '/team/33/(user/victor//aux:help)')")

    # -- trellis resolve --------------------------------------------------
    resolve_parser = subparsers.add_parser(
        "resolve", help="Apply redirects and recognize a URL against a route table"
    )
    resolve_parser.add_argument("routes", help="Import string of a route list (e.g. myapp.routes:ROUTES)")
    resolve_parser.add_argument("url", help="URL to resolve")
    resolve_parser.add_argument(
        "--params-inheritance",
        choices=("empty_only", "always"),
        default="empty_only",
        help="How snapshots inherit params and data from their ancestors",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.verbose:
        import logging

        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.command == "parse":
        from trellis.cli._parse import run_parse

        run_parse(args)
    elif args.command == "resolve":
        from trellis.cli._resolve_url import run_resolve

        run_resolve(args)
