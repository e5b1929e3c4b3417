"""URL tree model — segments, segment groups, and the tree itself.

A URL such as ``/team/33;open=true/(user/victor//support:help)?debug=1#top``
becomes::

    UrlTree
      root: UrlSegmentGroup([])
        primary: UrlSegmentGroup([team, 33;open=true])
          primary: UrlSegmentGroup([user, victor])
          support: UrlSegmentGroup([help])
      query_params: {"debug": "1"}
      fragment: "top"

Trees are rebuilt on every parse, redirect and recognition pass; nothing
here is mutated after construction except the two provenance fields that
``split`` records on the groups it creates.
"""

from __future__ import annotations

import weakref
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

PRIMARY_OUTLET = "primary"

type QueryParams = dict[str, str | list[str]]


@dataclass(frozen=True, slots=True)
class UrlSegment:
    """One ``/``-delimited path token plus its matrix parameters."""

    path: str
    parameters: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    def __str__(self) -> str:
        from trellis.url.grammar import serialize_segment

        return serialize_segment(self)


class UrlSegmentGroup:
    """A node of the URL tree: its own segments plus child groups by outlet.

    ``parent`` is a weak back-reference to the first group that adopted this
    one as a child. Groups built later around the same children (``split``
    views, redirect results) leave it untouched while that parent is alive.
    It is a lookup aid and never keeps a parent alive.

    ``source_segment`` and ``segment_index_shift`` are provenance set by
    ``split``: the group this one was rebuilt from, and how many consumed
    segments precede it there.
    """

    __slots__ = (
        "__weakref__",
        "_parent",
        "children",
        "segment_index_shift",
        "segments",
        "source_segment",
    )

    def __init__(
        self,
        segments: Iterable[UrlSegment] = (),
        children: Mapping[str, UrlSegmentGroup] | None = None,
    ) -> None:
        self.segments: tuple[UrlSegment, ...] = tuple(segments)
        self.children: dict[str, UrlSegmentGroup] = dict(children or {})
        self._parent: weakref.ref[UrlSegmentGroup] | None = None
        self.source_segment: UrlSegmentGroup | None = None
        self.segment_index_shift: int | None = None
        for child in self.children.values():
            if child.parent is None:
                child._parent = weakref.ref(self)

    @property
    def parent(self) -> UrlSegmentGroup | None:
        return self._parent() if self._parent is not None else None

    @property
    def number_of_children(self) -> int:
        return len(self.children)

    def has_children(self) -> bool:
        return bool(self.children)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UrlSegmentGroup):
            return NotImplemented
        if not equal_segments(self.segments, other.segments):
            return False
        if self.children.keys() != other.children.keys():
            return False
        return all(child == other.children[name] for name, child in self.children.items())

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        from trellis.url.grammar import serialize_paths

        return serialize_paths(self)

    def __repr__(self) -> str:
        return f"UrlSegmentGroup({list(self.segments)!r}, {self.children!r})"


@dataclass(frozen=True, slots=True)
class UrlTree:
    """A parsed URL: the root group, query parameters and fragment.

    The root never carries segments itself; the primary content lives in
    ``root.children["primary"]``.
    """

    root: UrlSegmentGroup = field(default_factory=UrlSegmentGroup)
    query_params: QueryParams = field(default_factory=dict)
    fragment: str | None = None

    def __str__(self) -> str:
        from trellis.url.grammar import serialize_url

        return serialize_url(self)


def create_empty_url_tree() -> UrlTree:
    return UrlTree(UrlSegmentGroup(), {}, None)


def create_root(root_candidate: UrlSegmentGroup) -> UrlSegmentGroup:
    """Wrap a candidate that carries segments so the root stays segment-free."""
    if root_candidate.segments:
        return UrlSegmentGroup((), {PRIMARY_OUTLET: root_candidate})
    return root_candidate


def merge_trivial_children(group: UrlSegmentGroup) -> UrlSegmentGroup:
    """Fold a lone primary child into its parent."""
    if group.number_of_children == 1 and PRIMARY_OUTLET in group.children:
        child = group.children[PRIMARY_OUTLET]
        return UrlSegmentGroup(group.segments + child.segments, child.children)
    return group


def squash_segment_group(group: UrlSegmentGroup) -> UrlSegmentGroup:
    """Recursively merge primary-only children and drop empty children.

    Empty children would otherwise serialize as ``/a(aux:)``.
    """
    children: dict[str, UrlSegmentGroup] = {}
    for outlet, child in group.children.items():
        candidate = squash_segment_group(child)
        if candidate.segments or candidate.has_children():
            children[outlet] = candidate
    return merge_trivial_children(UrlSegmentGroup(group.segments, children))


def equal_path(a: Iterable[UrlSegment], b: Iterable[UrlSegment]) -> bool:
    a, b = tuple(a), tuple(b)
    return len(a) == len(b) and all(x.path == y.path for x, y in zip(a, b, strict=True))


def equal_segments(a: Iterable[UrlSegment], b: Iterable[UrlSegment]) -> bool:
    a, b = tuple(a), tuple(b)
    return equal_path(a, b) and all(
        dict(x.parameters) == dict(y.parameters) for x, y in zip(a, b, strict=True)
    )


def map_children_into_list[R](
    group: UrlSegmentGroup,
    fn: Callable[[UrlSegmentGroup, str], list[R]],
) -> list[R]:
    """Apply *fn* to every child, primary outlet first, and concatenate."""
    result: list[R] = []
    if PRIMARY_OUTLET in group.children:
        result.extend(fn(group.children[PRIMARY_OUTLET], PRIMARY_OUTLET))
    for outlet, child in group.children.items():
        if outlet != PRIMARY_OUTLET:
            result.extend(fn(child, outlet))
    return result


# -- Containment -------------------------------------------------------------


def contains_tree(container: UrlTree, containee: UrlTree, *, exact: bool) -> bool:
    """Whether *containee* is the same URL as, or a prefix of, *container*.

    With ``exact=True`` both trees must have the same paths and query
    parameters; otherwise *containee* may be a leading part of *container*
    and its query parameters a subset.
    """
    if exact:
        return (
            _normalized_query(container.query_params) == _normalized_query(containee.query_params)
            and _equal_groups(container.root, containee.root)
        )
    return _contains_query(container.query_params, containee.query_params) and _contains_group(
        container.root, containee.root, containee.root.segments
    )


def _normalized_query(params: Mapping[str, Any]) -> dict[str, tuple[str, ...]]:
    return {k: tuple(v) if isinstance(v, list) else (v,) for k, v in params.items()}


def _contains_query(container: Mapping[str, Any], containee: Mapping[str, Any]) -> bool:
    outer = _normalized_query(container)
    return all(outer.get(k) == v for k, v in _normalized_query(containee).items())


def _equal_groups(container: UrlSegmentGroup, containee: UrlSegmentGroup) -> bool:
    if not equal_path(container.segments, containee.segments):
        return False
    if container.number_of_children != containee.number_of_children:
        return False
    for outlet, child in containee.children.items():
        other = container.children.get(outlet)
        if other is None or not _equal_groups(other, child):
            return False
    return True


def _contains_group(
    container: UrlSegmentGroup,
    containee: UrlSegmentGroup,
    paths: tuple[UrlSegment, ...],
) -> bool:
    if len(container.segments) > len(paths):
        current = container.segments[: len(paths)]
        return equal_path(current, paths) and not containee.has_children()

    if len(container.segments) == len(paths):
        if not equal_path(container.segments, paths):
            return False
        for outlet, child in containee.children.items():
            other = container.children.get(outlet)
            if other is None or not _contains_group(other, child, child.segments):
                return False
        return True

    current = paths[: len(container.segments)]
    rest = paths[len(container.segments) :]
    if not equal_path(container.segments, current):
        return False
    primary = container.children.get(PRIMARY_OUTLET)
    if primary is None:
        return False
    return _contains_group(primary, containee, rest)
