"""``trellis parse`` — show how a URL string is parsed."""

import argparse
import sys

from trellis.errors import UrlParseError
from trellis.url.grammar import parse_url
from trellis.url.tree import UrlSegmentGroup, UrlTree


def format_tree(tree: UrlTree) -> list[str]:
    """Outline the segment groups of *tree*, one line per group."""
    lines = ["<root>"]

    def _walk(group: UrlSegmentGroup, depth: int) -> None:
        for outlet, child in group.children.items():
            rendered = "/".join(str(s) for s in child.segments) or "<empty>"
            lines.append(f"{'  ' * depth}{outlet}: {rendered}")
            _walk(child, depth + 1)

    _walk(tree.root, 1)
    if tree.query_params:
        lines.append(f"query: {dict(tree.query_params)}")
    if tree.fragment is not None:
        lines.append(f"fragment: {tree.fragment!r}")
    return lines


def run_parse(args: argparse.Namespace) -> None:
    """Parse ``args.url`` and print its normalized form and segment tree."""
    try:
        tree = parse_url(args.url)
    except UrlParseError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    print(tree)
    for line in format_tree(tree):
        print(line)
