"""Recognition — the second pass, from a redirected URL to activated snapshots.

Re-walks the redirected ``UrlTree`` against the same configuration with
the redirect branch removed, producing one ``ActivatedRouteSnapshot`` per
matched route. Lazy child configurations must already be in the loader's
cache (redirect resolution fetches them), so recognition never suspends
and is a plain synchronous function.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from trellis._internal.tree import Tree, TreeNode
from trellis.errors import CannotMatchAnyRoutes, DuplicateOutletName
from trellis.routing.loader import RouterConfigLoader
from trellis.routing.matching import is_immediate_match, match, no_leftovers_in_url, split
from trellis.routing.route import Route, get_outlet, sort_by_matching_outlets
from trellis.url.tree import PRIMARY_OUTLET, QueryParams, UrlSegment, UrlSegmentGroup, UrlTree

logger = logging.getLogger("trellis.recognize")

type ParamsInheritance = Literal["empty_only", "always"]


@dataclass(slots=True, eq=False)
class ActivatedRouteSnapshot:
    """What one matched route contributes to the activated state.

    ``url`` holds the consumed segments. ``url_segment`` is the group of
    the original URL the match started in, and ``last_path_index`` the
    position of the last consumed segment within it (``-1`` for the root),
    which relative navigation from this snapshot needs.

    ``params`` and ``data`` already include whatever the snapshot inherits
    from its ancestors once recognition finishes.
    """

    url: tuple[UrlSegment, ...]
    params: dict[str, str]
    query_params: QueryParams
    fragment: str | None
    data: dict[str, Any]
    outlet: str
    component: Any
    route_config: Route | None
    url_segment: UrlSegmentGroup
    last_path_index: int
    resolve: dict[str, Any] = field(default_factory=dict)
    title: str | None = None

    @property
    def path(self) -> str:
        return "/".join(s.path for s in self.url)

    def __str__(self) -> str:
        url = "/".join(str(s) for s in self.url)
        matched = self.route_config.path if self.route_config is not None else ""
        return f"Route(url:'{url}', path:'{matched}')"

    __repr__ = __str__


class RouterStateSnapshot(Tree[ActivatedRouteSnapshot]):
    """The recognized snapshot tree plus the URL it was recognized from."""

    __slots__ = ("url",)

    def __init__(self, url: str, root: TreeNode[ActivatedRouteSnapshot]) -> None:
        super().__init__(root)
        self.url = url

    def __str__(self) -> str:
        return serialize_node(self.root_node)


def serialize_node(node: TreeNode[ActivatedRouteSnapshot]) -> str:
    children = f" {{{', '.join(serialize_node(c) for c in node.children)}}} " if node.children else ""
    return f"{node.value}{children}"


class Recognizer:
    __slots__ = (
        "config",
        "loader",
        "params_inheritance",
        "root_component",
        "url",
        "url_tree",
    )

    def __init__(
        self,
        config: Sequence[Route],
        url_tree: UrlTree,
        url: str,
        loader: RouterConfigLoader,
        params_inheritance: ParamsInheritance = "empty_only",
        root_component: Any = None,
    ) -> None:
        self.config = config
        self.url_tree = url_tree
        self.url = url
        self.loader = loader
        self.params_inheritance = params_inheritance
        self.root_component = root_component

    def recognize(self) -> RouterStateSnapshot:
        root_group = split(self.url_tree.root, (), (), _without_redirects(self.config)).segment_group

        children = self.process_segment_group(self.config, root_group, PRIMARY_OUTLET)
        if children is None:
            raise CannotMatchAnyRoutes(self.url_tree.root)

        root = ActivatedRouteSnapshot(
            url=(),
            params={},
            query_params=dict(self.url_tree.query_params),
            fragment=self.url_tree.fragment,
            data={},
            outlet=PRIMARY_OUTLET,
            component=self.root_component,
            route_config=None,
            url_segment=self.url_tree.root,
            last_path_index=-1,
        )
        root_node = TreeNode(root, children)
        self.inherit_params_and_data(root_node, [])

        state = RouterStateSnapshot(self.url, root_node)
        logger.debug("Recognized %s as %s", self.url, state)
        return state

    def inherit_params_and_data(
        self,
        node: TreeNode[ActivatedRouteSnapshot],
        ancestors: list[ActivatedRouteSnapshot],
    ) -> None:
        """Fold ancestor params, data and resolve into every snapshot, top-down."""
        path = [*ancestors, node.value]
        start = 0
        if self.params_inheritance != "always":
            start = len(path) - 1
            while start >= 1:
                current, parent = path[start], path[start - 1]
                if current.route_config is not None and current.route_config.path == "":
                    start -= 1
                elif parent.component is None:
                    start -= 1
                else:
                    break

        params: dict[str, str] = {}
        data: dict[str, Any] = {}
        resolve: dict[str, Any] = {}
        for snapshot in path[start:]:
            params.update(snapshot.params)
            data.update(snapshot.data)
            resolve.update(snapshot.resolve)

        node.value.params = params
        node.value.data = data
        node.value.resolve = resolve
        for child in node.children:
            self.inherit_params_and_data(child, path)

    # -- Matching ------------------------------------------------------------

    def process_segment_group(
        self,
        config: Sequence[Route],
        segment_group: UrlSegmentGroup,
        outlet: str,
    ) -> list[TreeNode[ActivatedRouteSnapshot]] | None:
        if not segment_group.segments and segment_group.has_children():
            return self.process_children(config, segment_group)
        return self.process_segment(config, segment_group, segment_group.segments, outlet)

    def process_children(
        self,
        config: Sequence[Route],
        segment_group: UrlSegmentGroup,
    ) -> list[TreeNode[ActivatedRouteSnapshot]] | None:
        children: list[TreeNode[ActivatedRouteSnapshot]] = []
        for outlet, child in segment_group.children.items():
            outlet_children = self.process_segment_group(
                sort_by_matching_outlets(config, outlet), child, outlet
            )
            if outlet_children is None:
                return None
            children.extend(outlet_children)

        merged = merge_empty_path_matches(children)
        check_outlet_name_uniqueness(merged)
        sort_activated_route_snapshots(merged)
        return merged

    def process_segment(
        self,
        config: Sequence[Route],
        segment_group: UrlSegmentGroup,
        segments: Sequence[UrlSegment],
        outlet: str,
    ) -> list[TreeNode[ActivatedRouteSnapshot]] | None:
        for route in config:
            children = self.process_segment_against_route(route, segment_group, segments, outlet)
            if children is not None:
                return children
        if no_leftovers_in_url(segment_group, segments, outlet):
            return []
        return None

    def process_segment_against_route(
        self,
        route: Route,
        raw_segment: UrlSegmentGroup,
        segments: Sequence[UrlSegment],
        outlet: str,
    ) -> list[TreeNode[ActivatedRouteSnapshot]] | None:
        if route.redirect_to is not None or not is_immediate_match(route, raw_segment, segments, outlet):
            return None

        consumed: tuple[UrlSegment, ...] = ()
        raw_sliced: tuple[UrlSegment, ...] = ()

        if route.path == "**":
            params = dict(segments[-1].parameters) if segments else {}
            snapshot = self._snapshot(route, tuple(segments), params, raw_segment, len(segments))
        else:
            result = match(raw_segment, route, segments)
            if not result.matched:
                return None
            consumed = result.consumed_segments
            raw_sliced = tuple(segments[result.last_child :])
            snapshot = self._snapshot(
                route, consumed, dict(result.parameters), raw_segment, len(consumed)
            )

        child_config = self.get_child_config(route)
        split_result = split(raw_segment, consumed, raw_sliced, _without_redirects(child_config))
        segment_group = split_result.segment_group
        sliced = split_result.sliced_segments

        if not sliced and segment_group.has_children():
            children = self.process_children(child_config, segment_group)
            if children is None:
                return None
            return [TreeNode(snapshot, children)]

        if not child_config and not sliced:
            return [TreeNode(snapshot, [])]

        matched_on_outlet = get_outlet(route) == outlet
        children = self.process_segment(
            child_config,
            segment_group,
            sliced,
            PRIMARY_OUTLET if matched_on_outlet else outlet,
        )
        if children is None:
            return None
        return [TreeNode(snapshot, children)]

    def get_child_config(self, route: Route) -> Sequence[Route]:
        if route.children is not None:
            return route.children
        if route.load_children is not None:
            loaded = self.loader.get_loaded(route)
            if loaded is not None:
                return loaded.routes
            logger.debug("Lazy configuration for %r was never loaded", route)
        return ()

    def _snapshot(
        self,
        route: Route,
        url: tuple[UrlSegment, ...],
        params: dict[str, str],
        raw_segment: UrlSegmentGroup,
        consumed_count: int,
    ) -> ActivatedRouteSnapshot:
        return ActivatedRouteSnapshot(
            url=url,
            params=params,
            query_params=dict(self.url_tree.query_params),
            fragment=self.url_tree.fragment,
            data=dict(route.data),
            outlet=get_outlet(route),
            component=route.component,
            route_config=route,
            url_segment=get_source_segment_group(raw_segment),
            last_path_index=get_path_index_shift(raw_segment) + consumed_count,
            resolve=dict(route.resolve),
            title=route.title,
        )


def _without_redirects(config: Sequence[Route]) -> list[Route]:
    return [r for r in config if r.redirect_to is None]


def get_source_segment_group(segment_group: UrlSegmentGroup) -> UrlSegmentGroup:
    """Follow ``source_segment`` back to the group of the original URL."""
    s = segment_group
    while s.source_segment is not None:
        s = s.source_segment
    return s


def get_path_index_shift(segment_group: UrlSegmentGroup) -> int:
    """Sum the index shifts along the provenance chain, minus one."""
    s = segment_group
    result = s.segment_index_shift or 0
    while s.source_segment is not None:
        s = s.source_segment
        result += s.segment_index_shift or 0
    return result - 1


def _has_empty_path_config(node: TreeNode[ActivatedRouteSnapshot]) -> bool:
    config = node.value.route_config
    return config is not None and config.path == "" and config.redirect_to is None


def merge_empty_path_matches(
    nodes: list[TreeNode[ActivatedRouteSnapshot]],
) -> list[TreeNode[ActivatedRouteSnapshot]]:
    """Combine sibling matches of the same empty-path route into one node.

    ``/(a//aux:b)`` against ``{path: '', children: [a, b(aux)]}`` matches
    the empty-path parent once per outlet; the result is a single parent
    holding both children.
    """
    result: list[TreeNode[ActivatedRouteSnapshot]] = []
    merged: list[TreeNode[ActivatedRouteSnapshot]] = []

    for node in nodes:
        if not _has_empty_path_config(node):
            result.append(node)
            continue
        duplicate = next(
            (r for r in result if r.value.route_config is node.value.route_config), None
        )
        if duplicate is None:
            result.append(node)
            continue
        duplicate.children.extend(node.children)
        if all(m is not duplicate for m in merged):
            merged.append(duplicate)

    for node in merged:
        result.append(TreeNode(node.value, merge_empty_path_matches(node.children)))
    return [n for n in result if all(n is not m for m in merged)]


def check_outlet_name_uniqueness(nodes: list[TreeNode[ActivatedRouteSnapshot]]) -> None:
    seen: dict[str, ActivatedRouteSnapshot] = {}
    for node in nodes:
        previous = seen.get(node.value.outlet)
        if previous is not None:
            first = "/".join(str(s) for s in previous.url)
            second = "/".join(str(s) for s in node.value.url)
            raise DuplicateOutletName(node.value.outlet, first, second)
        seen[node.value.outlet] = node.value


def sort_activated_route_snapshots(nodes: list[TreeNode[ActivatedRouteSnapshot]]) -> None:
    """Primary outlet first, then the rest alphabetically, in place."""
    nodes.sort(key=lambda n: (n.value.outlet != PRIMARY_OUTLET, n.value.outlet))


def recognize(
    config: Sequence[Route],
    url_tree: UrlTree,
    url: str,
    loader: RouterConfigLoader | None = None,
    params_inheritance: ParamsInheritance = "empty_only",
    root_component: Any = None,
) -> RouterStateSnapshot:
    """Build the activated snapshot tree for an already redirected *url_tree*.

    Raises ``CannotMatchAnyRoutes`` when no route accepts the tree and
    ``DuplicateOutletName`` when two siblings land on the same outlet.
    """
    return Recognizer(
        config,
        url_tree,
        url,
        loader if loader is not None else RouterConfigLoader(),
        params_inheritance,
        root_component,
    ).recognize()
