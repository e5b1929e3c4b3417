"""Redirect resolution — the first of the two passes over a requested URL.

Walks the route configuration against the requested ``UrlTree`` and
produces the redirected tree, fetching lazy child configurations and
running their load guards along the way.

Pipeline::

    apply_redirects(routes, tree, loader)
      -> expand_segment_group          (root)
         -> expand_children            (one task per outlet, fan-out/fan-in)
         -> expand_segment             (candidates in declaration order)
            -> expand_segment_against_route
               -> match_segment_against_route   (no redirect_to)
               -> expand_using_redirect         (redirect_to)

Backtracking is expressed with result values, not exceptions: every
expansion step returns a ``UrlSegmentGroup``, ``NoMatch`` (try the next
candidate) or ``AbsoluteRedirect`` (abandon this attempt and restart from
the new tree with redirects disabled).
"""

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import anyio

from trellis.errors import (
    CannotMatchAnyRoutes,
    MissingPositionalParam,
    NamedOutletRedirectError,
    NavigationCancelled,
    NavigationRedirect,
)
from trellis.routing.guards import run_can_load_guards
from trellis.routing.loader import RouterConfigLoader
from trellis.routing.matching import is_immediate_match, match, no_leftovers_in_url, split
from trellis.routing.route import Route, get_outlet, sort_by_matching_outlets
from trellis.url.grammar import parse_url
from trellis.url.tree import (
    PRIMARY_OUTLET,
    QueryParams,
    UrlSegment,
    UrlSegmentGroup,
    UrlTree,
    create_root,
    squash_segment_group,
)

logger = logging.getLogger("trellis.redirects")


@dataclass(frozen=True, slots=True)
class NoMatch:
    """A candidate route did not match; the enclosing loop tries the next one."""

    segment_group: UrlSegmentGroup | None = None


@dataclass(frozen=True, slots=True)
class AbsoluteRedirect:
    """An absolute redirect was applied; resolution restarts from ``url_tree``."""

    url_tree: UrlTree


type Expansion = UrlSegmentGroup | NoMatch | AbsoluteRedirect
type ChildrenExpansion = dict[str, UrlSegmentGroup] | NoMatch | AbsoluteRedirect


def outlet_precedence(children: Mapping[str, Any]) -> list[str]:
    """Outlet names with the primary outlet first, the rest alphabetically."""
    names = sorted(name for name in children if name != PRIMARY_OUTLET)
    if PRIMARY_OUTLET in children:
        names.insert(0, PRIMARY_OUTLET)
    return names


async def gather_outlets[R](
    outlets: Sequence[str],
    expand: Callable[[str], Awaitable[R]],
    is_final: Callable[[R], bool],
    *,
    concurrent: bool = True,
) -> dict[str, R]:
    """Run *expand* for every outlet and collect the results by outlet name.

    The outcome is the same as expanding the outlets one after another in
    the given order and stopping at the first result for which *is_final*
    holds: when run concurrently, an outlet's final result only wins once
    every outlet before it has finished, and the remaining siblings are
    cancelled at that point. Exceptions behave like final results and are
    re-raised unwrapped.

    The returned dict holds results in outlet order, up to and including
    the deciding one.
    """
    results: dict[str, R] = {}
    errors: dict[str, Exception] = {}

    if not concurrent:
        for outlet in outlets:
            result = await expand(outlet)
            results[outlet] = result
            if is_final(result):
                break
        return results

    def _decided() -> bool:
        for outlet in outlets:
            if outlet in errors:
                return True
            if outlet not in results:
                return False
            if is_final(results[outlet]):
                return True
        return True

    async with anyio.create_task_group() as tg:

        async def _run(outlet: str) -> None:
            try:
                results[outlet] = await expand(outlet)
            except Exception as exc:
                errors[outlet] = exc
            if _decided():
                tg.cancel_scope.cancel()

        for outlet in outlets:
            tg.start_soon(_run, outlet)

    ordered: dict[str, R] = {}
    for outlet in outlets:
        if outlet in errors:
            raise errors[outlet]
        if outlet not in results:
            break
        ordered[outlet] = results[outlet]
        if is_final(results[outlet]):
            break
    return ordered


class RedirectResolver:
    """One redirect resolution over one requested tree.

    ``allow_redirects`` starts true and flips to false the moment an
    absolute redirect is applied; from then on redirect routes are
    treated as non-matches.
    """

    __slots__ = ("allow_redirects", "concurrent_outlets", "config", "injector", "loader", "url_tree")

    def __init__(
        self,
        config: Sequence[Route],
        url_tree: UrlTree,
        loader: RouterConfigLoader,
        injector: Mapping[Any, Any] | None = None,
        *,
        concurrent_outlets: bool = True,
    ) -> None:
        self.config = config
        self.url_tree = url_tree
        self.loader = loader
        self.injector = injector
        self.concurrent_outlets = concurrent_outlets
        self.allow_redirects = True

    async def apply(self) -> UrlTree:
        """Return the redirected tree.

        Raises ``CannotMatchAnyRoutes`` when the requested URL leaves
        segments no route accepts.
        """
        split_group = split(self.url_tree.root, (), (), self.config).segment_group
        root = UrlSegmentGroup(split_group.segments, split_group.children)

        result = await self.expand_segment_group(self.config, root, PRIMARY_OUTLET)
        if isinstance(result, AbsoluteRedirect):
            # No further redirects after an absolute one
            self.allow_redirects = False
            logger.debug("Absolute redirect to %s, re-matching without redirects", result.url_tree)
            return await self._rematch(result.url_tree)
        if isinstance(result, NoMatch):
            raise CannotMatchAnyRoutes(result.segment_group)
        return self._create_url_tree(result, self.url_tree.query_params, self.url_tree.fragment)

    async def _rematch(self, tree: UrlTree) -> UrlTree:
        """Walk the redirect target once more, loading what it needs.

        The redirect already fixed the URL, so a target the configuration
        cannot fully match is returned as-is; recognition reports it.
        """
        result = await self.expand_segment_group(self.config, tree.root, PRIMARY_OUTLET)
        if isinstance(result, UrlSegmentGroup):
            return self._create_url_tree(result, tree.query_params, tree.fragment)
        logger.debug("Redirect target %s matched no route during the re-match", tree)
        return tree

    def _create_url_tree(
        self,
        root_candidate: UrlSegmentGroup,
        query_params: QueryParams,
        fragment: str | None,
    ) -> UrlTree:
        root = create_root(squash_segment_group(root_candidate))
        return UrlTree(root, dict(query_params), fragment)

    # -- Expansion -----------------------------------------------------------

    async def expand_segment_group(
        self,
        routes: Sequence[Route],
        segment_group: UrlSegmentGroup,
        outlet: str,
    ) -> Expansion:
        if not segment_group.segments and segment_group.has_children():
            children = await self.expand_children(routes, segment_group)
            if isinstance(children, dict):
                return UrlSegmentGroup((), children)
            return children
        return await self.expand_segment(
            segment_group, routes, segment_group.segments, outlet, allow_redirects=True
        )

    async def expand_children(
        self,
        routes: Sequence[Route],
        segment_group: UrlSegmentGroup,
    ) -> ChildrenExpansion:
        """Expand every child outlet; the primary outlet's outcome takes precedence."""

        async def _expand(outlet: str) -> Expansion:
            child = segment_group.children[outlet]
            return await self.expand_segment_group(
                sort_by_matching_outlets(routes, outlet), child, outlet
            )

        results = await gather_outlets(
            outlet_precedence(segment_group.children),
            _expand,
            lambda r: not isinstance(r, UrlSegmentGroup),
            concurrent=self.concurrent_outlets,
        )
        for result in results.values():
            if not isinstance(result, UrlSegmentGroup):
                return result

        # Keep the requested URL's outlet order, primary first
        children: dict[str, UrlSegmentGroup] = {}
        if PRIMARY_OUTLET in results:
            children[PRIMARY_OUTLET] = results[PRIMARY_OUTLET]  # type: ignore[assignment]
        for outlet in segment_group.children:
            if outlet != PRIMARY_OUTLET:
                children[outlet] = results[outlet]  # type: ignore[assignment]
        return children

    async def expand_segment(
        self,
        segment_group: UrlSegmentGroup,
        routes: Sequence[Route],
        segments: Sequence[UrlSegment],
        outlet: str,
        *,
        allow_redirects: bool,
    ) -> Expansion:
        """Try *routes* in declaration order; the first non-``NoMatch`` wins."""
        for route in routes:
            result = await self.expand_segment_against_route(
                segment_group, routes, route, segments, outlet, allow_redirects=allow_redirects
            )
            if not isinstance(result, NoMatch):
                return result

        if no_leftovers_in_url(segment_group, segments, outlet):
            return UrlSegmentGroup()
        return NoMatch(segment_group)

    async def expand_segment_against_route(
        self,
        segment_group: UrlSegmentGroup,
        routes: Sequence[Route],
        route: Route,
        segments: Sequence[UrlSegment],
        outlet: str,
        *,
        allow_redirects: bool,
    ) -> Expansion:
        if not is_immediate_match(route, segment_group, segments, outlet):
            return NoMatch(segment_group)

        if route.redirect_to is None:
            return await self.match_segment_against_route(segment_group, route, segments, outlet)

        if allow_redirects and self.allow_redirects:
            return await self.expand_using_redirect(segment_group, routes, route, segments, outlet)

        return NoMatch(segment_group)

    async def expand_using_redirect(
        self,
        segment_group: UrlSegmentGroup,
        routes: Sequence[Route],
        route: Route,
        segments: Sequence[UrlSegment],
        outlet: str,
    ) -> Expansion:
        redirect_to = route.redirect_to or ""

        if route.path == "**":
            new_tree = self.apply_redirect_commands((), redirect_to, {})
            logger.debug("Wildcard redirect %r -> %s", route, new_tree)
            if redirect_to.startswith("/"):
                return AbsoluteRedirect(new_tree)
            new_segments = self.lineralize_segments(route, new_tree)
            group = UrlSegmentGroup(new_segments)
            return await self.expand_segment(group, routes, new_segments, outlet, allow_redirects=False)

        result = match(segment_group, route, segments)
        if not result.matched:
            return NoMatch(segment_group)

        new_tree = self.apply_redirect_commands(
            result.consumed_segments, redirect_to, result.positional_params
        )
        logger.debug("Redirect %r -> %s", route, new_tree)
        if redirect_to.startswith("/"):
            return AbsoluteRedirect(new_tree)

        new_segments = self.lineralize_segments(route, new_tree)
        return await self.expand_segment(
            segment_group,
            routes,
            new_segments + result.remaining_segments,
            outlet,
            allow_redirects=False,
        )

    async def match_segment_against_route(
        self,
        raw_segment_group: UrlSegmentGroup,
        route: Route,
        segments: Sequence[UrlSegment],
        outlet: str,
    ) -> Expansion:
        if route.path == "**":
            if route.load_children is not None:
                await self.loader.load(route)
            return UrlSegmentGroup(segments)

        result = match(raw_segment_group, route, segments)
        if not result.matched:
            return NoMatch(raw_segment_group)

        consumed = result.consumed_segments
        child_config = await self.get_child_config(route, segments)
        split_result = split(raw_segment_group, consumed, result.remaining_segments, child_config)
        segment_group = UrlSegmentGroup(
            split_result.segment_group.segments, split_result.segment_group.children
        )
        sliced = split_result.sliced_segments

        if not sliced and segment_group.has_children():
            children = await self.expand_children(child_config, segment_group)
            if isinstance(children, dict):
                return UrlSegmentGroup(consumed, children)
            return children

        if not child_config and not sliced:
            return UrlSegmentGroup(consumed)

        # Children of a route matched on its own outlet are primary routes;
        # an empty-path match borrowed from another outlet keeps the outlet.
        matched_on_outlet = get_outlet(route) == outlet
        expanded = await self.expand_segment(
            segment_group,
            child_config,
            sliced,
            PRIMARY_OUTLET if matched_on_outlet else outlet,
            allow_redirects=True,
        )
        if isinstance(expanded, UrlSegmentGroup):
            return UrlSegmentGroup(consumed + expanded.segments, expanded.children)
        return expanded

    async def get_child_config(self, route: Route, segments: Sequence[UrlSegment]) -> Sequence[Route]:
        """Inline children, or the lazily loaded configuration once its guards pass."""
        if route.children is not None:
            return route.children

        if route.load_children is not None:
            cached = self.loader.get_loaded(route)
            if cached is not None:
                return cached.routes

            outcome = await run_can_load_guards(route, segments, self.injector)
            if outcome is True:
                return (await self.loader.load(route)).routes
            if outcome is False:
                msg = (
                    "Cannot load children because the guard of the route "
                    f"\"path: '{route.path}'\" returned false"
                )
                raise NavigationCancelled(msg)
            logger.warning("CanLoad guard for %r redirected to %s", route, outcome)
            raise NavigationRedirect(outcome)

        return ()

    # -- Redirect application ------------------------------------------------

    def lineralize_segments(self, route: Route, url_tree: UrlTree) -> tuple[UrlSegment, ...]:
        """Flatten a relative redirect target along its primary outlet."""
        result: list[UrlSegment] = []
        current = url_tree.root
        while True:
            result.extend(current.segments)
            if current.number_of_children == 0:
                return tuple(result)
            if current.number_of_children > 1 or PRIMARY_OUTLET not in current.children:
                raise NamedOutletRedirectError(route.redirect_to or "")
            current = current.children[PRIMARY_OUTLET]

    def apply_redirect_commands(
        self,
        segments: Sequence[UrlSegment],
        redirect_to: str,
        pos_params: Mapping[str, UrlSegment],
    ) -> UrlTree:
        """Build the redirect target tree, substituting ``:name`` tokens."""
        target = parse_url(redirect_to)
        # Shared across the whole target so a reused segment is claimed once
        actual = list(segments)
        root = self._create_segment_group(redirect_to, target.root, actual, pos_params)
        query = self._create_query_params(target.query_params, self.url_tree.query_params)
        return UrlTree(root, query, target.fragment)

    def _create_query_params(self, redirect_params: QueryParams, actual_params: QueryParams) -> QueryParams:
        """Copy redirect query params; ``:name`` values copy the request's ``name``."""
        result: QueryParams = {}
        for key, value in redirect_params.items():
            if isinstance(value, str) and value.startswith(":"):
                source_name = value[1:]
                if source_name in actual_params:
                    result[key] = actual_params[source_name]
            else:
                result[key] = value
        return result

    def _create_segment_group(
        self,
        redirect_to: str,
        group: UrlSegmentGroup,
        actual: list[UrlSegment],
        pos_params: Mapping[str, UrlSegment],
    ) -> UrlSegmentGroup:
        segments = [
            self._find_pos_param(redirect_to, s, pos_params)
            if s.path.startswith(":")
            else self._find_or_return(s, actual)
            for s in group.segments
        ]
        children = {
            name: self._create_segment_group(redirect_to, child, actual, pos_params)
            for name, child in group.children.items()
        }
        return UrlSegmentGroup(segments, children)

    def _find_pos_param(
        self,
        redirect_to: str,
        segment: UrlSegment,
        pos_params: Mapping[str, UrlSegment],
    ) -> UrlSegment:
        found = pos_params.get(segment.path[1:])
        if found is None:
            raise MissingPositionalParam(redirect_to, segment.path)
        return found

    def _find_or_return(self, segment: UrlSegment, actual: list[UrlSegment]) -> UrlSegment:
        """Reuse a consumed segment with the same path (keeping its matrix params)."""
        for index, candidate in enumerate(actual):
            if candidate.path == segment.path:
                del actual[index:]
                return candidate
        return segment


async def apply_redirects(
    config: Sequence[Route],
    url_tree: UrlTree,
    loader: RouterConfigLoader | None = None,
    injector: Mapping[Any, Any] | None = None,
    *,
    concurrent_outlets: bool = True,
) -> UrlTree:
    """Resolve every redirect in *url_tree* against *config*.

    Usage::

        routes = [Route(path="a/:id", redirect_to="b/:id"), Route(path="b/:id", component=B)]
        tree = await apply_redirects(routes, parse_url("/a/5"))
        str(tree)  # "/b/5"
    """
    if loader is None:
        loader = RouterConfigLoader()
    loader.register(config)
    resolver = RedirectResolver(
        config,
        url_tree,
        loader,
        injector,
        concurrent_outlets=concurrent_outlets,
    )
    return await resolver.apply()
