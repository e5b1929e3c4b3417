"""Generic N-ary tree used for activated-route snapshots.

Lookups compare values by identity, so two equal-looking snapshots in
different positions are never confused.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any


class TreeNode[T]:
    """A value plus its ordered child nodes."""

    __slots__ = ("children", "value")

    def __init__(self, value: T, children: list[TreeNode[T]] | None = None) -> None:
        self.value = value
        self.children: list[TreeNode[T]] = children if children is not None else []

    def __repr__(self) -> str:
        return f"TreeNode({self.value!r})"


class Tree[T]:
    """Read-only navigation helpers over a rooted ``TreeNode`` structure."""

    __slots__ = ("_root",)

    def __init__(self, root: TreeNode[T]) -> None:
        self._root = root

    @property
    def root(self) -> T:
        return self._root.value

    @property
    def root_node(self) -> TreeNode[T]:
        return self._root

    def parent(self, value: T) -> T | None:
        path = self.path_from_root(value)
        return path[-2] if len(path) > 1 else None

    def children(self, value: T) -> list[T]:
        node = find_node(value, self._root)
        return [c.value for c in node.children] if node is not None else []

    def first_child(self, value: T) -> T | None:
        node = find_node(value, self._root)
        if node is not None and node.children:
            return node.children[0].value
        return None

    def siblings(self, value: T) -> list[T]:
        path = find_path(value, self._root)
        if len(path) < 2:
            return []
        return [c.value for c in path[-2].children if c.value is not value]

    def path_from_root(self, value: T) -> list[T]:
        return [n.value for n in find_path(value, self._root)]

    def walk(self) -> list[T]:
        """Return every value in depth-first pre-order."""
        result: list[T] = []

        def _visit(node: TreeNode[T]) -> None:
            result.append(node.value)
            for child in node.children:
                _visit(child)

        _visit(self._root)
        return result


def find_node[T](value: T, node: TreeNode[T]) -> TreeNode[T] | None:
    if value is node.value:
        return node
    for child in node.children:
        found = find_node(value, child)
        if found is not None:
            return found
    return None


def find_path[T](value: T, node: TreeNode[T]) -> list[TreeNode[T]]:
    """Return the nodes from *node* down to the one holding *value*, or ``[]``."""
    if value is node.value:
        return [node]
    for child in node.children:
        path = find_path(value, child)
        if path:
            return [node, *path]
    return []


def node_children_as_map(
    node: TreeNode[Any] | None,
    key: Callable[[Any], str] = lambda v: v.outlet,
) -> dict[str, TreeNode[Any]]:
    """Index a node's children by outlet name (the value's ``outlet`` by default)."""
    if node is None:
        return {}
    return {key(child.value): child for child in node.children}
