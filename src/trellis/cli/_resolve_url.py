"""``trellis resolve`` — run a URL through redirects and recognition.

Prints the redirected URL followed by the activated snapshot tree,
one snapshot per line.
"""

import argparse
import sys

import anyio

from trellis._internal.tree import TreeNode
from trellis.cli._resolve import resolve_routes
from trellis.config import NavigatorConfig
from trellis.errors import TrellisError
from trellis.navigator import Navigation, Navigator
from trellis.routing.recognize import ActivatedRouteSnapshot


def format_state(node: TreeNode[ActivatedRouteSnapshot], depth: int = 0) -> list[str]:
    snapshot = node.value
    line = f"{'  ' * depth}{snapshot.outlet}: {snapshot}"
    if snapshot.params:
        line += f" params={snapshot.params}"
    lines = [line]
    for child in node.children:
        lines.extend(format_state(child, depth + 1))
    return lines


def run_resolve(args: argparse.Namespace) -> None:
    """Resolve ``args.url`` against the route table named by ``args.routes``."""
    try:
        routes = resolve_routes(args.routes)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    async def _navigate() -> Navigation:
        navigator = Navigator(routes, config=NavigatorConfig(params_inheritance=args.params_inheritance))
        return await navigator.navigate(args.url)

    try:
        navigation = anyio.run(_navigate)
    except TrellisError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    print(navigation.url)
    for line in format_state(navigation.state.root_node):
        print(line)
