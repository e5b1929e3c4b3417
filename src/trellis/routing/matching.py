"""Route matching and segment splitting shared by both resolution passes.

``match`` decides whether one route consumes a prefix of the remaining
segments. ``split`` reshapes a segment group before its child
configuration is consulted, so that empty-path routes on named outlets
get a group to match against.

Everything here is synchronous and pure: inputs are never mutated, new
groups are built instead.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from trellis.routing.route import Route, UrlMatchResult, get_outlet
from trellis.url.tree import PRIMARY_OUTLET, UrlSegment, UrlSegmentGroup


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Outcome of matching one route against the unconsumed segments.

    ``parameters`` merges the captured positional values with the matrix
    parameters of the last consumed segment (the segment's own values win).
    """

    matched: bool
    consumed_segments: tuple[UrlSegment, ...] = ()
    last_child: int = 0
    parameters: Mapping[str, str] = field(default_factory=dict)
    positional_params: Mapping[str, UrlSegment] = field(default_factory=dict)
    remaining_segments: tuple[UrlSegment, ...] = ()


NO_MATCH = MatchResult(matched=False)


@dataclass(frozen=True, slots=True)
class SplitResult:
    segment_group: UrlSegmentGroup
    sliced_segments: tuple[UrlSegment, ...]


def default_url_matcher(
    segments: Sequence[UrlSegment],
    segment_group: UrlSegmentGroup,
    route: Route,
) -> UrlMatchResult | None:
    """Match ``route.path`` token by token; ``:name`` tokens capture a segment."""
    parts = (route.path or "").split("/")
    if len(parts) > len(segments):
        # The URL is shorter than the route
        return None

    if route.path_match == "full" and (segment_group.has_children() or len(parts) < len(segments)):
        return None

    pos_params: dict[str, UrlSegment] = {}
    for part, segment in zip(parts, segments, strict=False):
        if part.startswith(":"):
            pos_params[part[1:]] = segment
        elif part != segment.path:
            return None

    return UrlMatchResult(consumed=tuple(segments[: len(parts)]), pos_params=pos_params)


def match(
    segment_group: UrlSegmentGroup,
    route: Route,
    segments: Sequence[UrlSegment],
) -> MatchResult:
    """Match *route* against the unconsumed *segments* of *segment_group*.

    An empty-path route consumes nothing; with ``path_match="full"`` it
    only matches when nothing at all is left, which is what stops
    ``{path: '', redirect_to: ...}`` from looping.
    """
    segments = tuple(segments)
    if route.path == "":
        if route.path_match == "full" and (segment_group.has_children() or segments):
            return NO_MATCH
        return MatchResult(matched=True, remaining_segments=segments)

    matcher = route.matcher or default_url_matcher
    result = matcher(segments, segment_group, route)
    if result is None:
        return NO_MATCH

    consumed = tuple(result.consumed)
    positional = dict(result.pos_params or {})
    parameters = {name: segment.path for name, segment in positional.items()}
    if consumed:
        parameters.update(consumed[-1].parameters)

    return MatchResult(
        matched=True,
        consumed_segments=consumed,
        last_child=len(consumed),
        parameters=parameters,
        positional_params=positional,
        remaining_segments=segments[len(consumed) :],
    )


def empty_path_match(
    segment_group: UrlSegmentGroup,
    sliced_segments: Sequence[UrlSegment],
    route: Route,
) -> bool:
    """Whether *route* is an empty-path route that may match here."""
    if (segment_group.has_children() or sliced_segments) and route.path_match == "full":
        return False
    return route.path == ""


def is_immediate_match(
    route: Route,
    raw_segment: UrlSegmentGroup,
    segments: Sequence[UrlSegment],
    outlet: str,
) -> bool:
    """Cheap pre-check before a route is expanded or recognized.

    A route declared for another outlet is still considered when it is an
    empty-path match, so ``/(b:b)`` can reach ``{path: '', children:
    [{path: 'b', outlet: 'b'}]}``. Never for the primary outlet: children
    of a named-outlet route are written as primary routes, and ``/b``
    must not leak into ``{path: '', outlet: 'x', children: [{path: 'b'}]}``.
    """
    if get_outlet(route) != outlet and (
        outlet == PRIMARY_OUTLET or not empty_path_match(raw_segment, segments, route)
    ):
        return False
    if route.path == "**":
        return True
    return match(raw_segment, route, segments).matched


def no_leftovers_in_url(
    segment_group: UrlSegmentGroup,
    segments: Sequence[UrlSegment],
    outlet: str,
) -> bool:
    return not segments and outlet not in segment_group.children


# -- Splitting ---------------------------------------------------------------


def split(
    segment_group: UrlSegmentGroup,
    consumed_segments: Sequence[UrlSegment],
    sliced_segments: Sequence[UrlSegment],
    config: Sequence[Route],
) -> SplitResult:
    """Partition *segment_group* for matching against the child *config*.

    1. Segments remain and some child route is an empty-path match on a
       named outlet: the remaining segments move one level down behind a
       primary child, and every empty-path named outlet gets an empty
       group next to it.
    2. No segments remain and some child route is an empty-path match:
       outlets not yet present get an empty group.
    3. Otherwise the group passes through unchanged.

    The branches are mutually exclusive on ``sliced_segments``; the first
    applies whenever segments remain. Every returned group records the
    group it came from and how many consumed segments precede it.
    """
    consumed = tuple(consumed_segments)
    sliced = tuple(sliced_segments)
    shift = len(consumed)

    if sliced and _contains_empty_path_matches_with_named_outlets(segment_group, sliced, config):
        primary = UrlSegmentGroup(sliced, segment_group.children)
        children = _create_children_for_empty_paths(segment_group, shift, config, primary)
        s = _derived(UrlSegmentGroup(consumed, children), segment_group, shift)
        return SplitResult(s, ())

    if not sliced and _contains_empty_path_matches(segment_group, sliced, config):
        children = _add_empty_paths_to_children_if_needed(segment_group, shift, sliced, config)
        s = _derived(UrlSegmentGroup(segment_group.segments, children), segment_group, shift)
        return SplitResult(s, sliced)

    s = _derived(
        UrlSegmentGroup(segment_group.segments, segment_group.children), segment_group, shift
    )
    return SplitResult(s, sliced)


def _derived(group: UrlSegmentGroup, source: UrlSegmentGroup, shift: int) -> UrlSegmentGroup:
    group.source_segment = source
    group.segment_index_shift = shift
    return group


def _add_empty_paths_to_children_if_needed(
    segment_group: UrlSegmentGroup,
    shift: int,
    sliced: tuple[UrlSegment, ...],
    routes: Sequence[Route],
) -> dict[str, UrlSegmentGroup]:
    children = dict(segment_group.children)
    for route in routes:
        outlet = get_outlet(route)
        if empty_path_match(segment_group, sliced, route) and outlet not in children:
            children[outlet] = _derived(UrlSegmentGroup(), segment_group, shift)
    return children


def _create_children_for_empty_paths(
    segment_group: UrlSegmentGroup,
    shift: int,
    routes: Sequence[Route],
    primary: UrlSegmentGroup,
) -> dict[str, UrlSegmentGroup]:
    children = {PRIMARY_OUTLET: _derived(primary, segment_group, shift)}
    for route in routes:
        outlet = get_outlet(route)
        if route.path == "" and outlet != PRIMARY_OUTLET:
            children[outlet] = _derived(UrlSegmentGroup(), segment_group, shift)
    return children


def _contains_empty_path_matches_with_named_outlets(
    segment_group: UrlSegmentGroup,
    sliced: tuple[UrlSegment, ...],
    routes: Sequence[Route],
) -> bool:
    return any(
        empty_path_match(segment_group, sliced, r) and get_outlet(r) != PRIMARY_OUTLET
        for r in routes
    )


def _contains_empty_path_matches(
    segment_group: UrlSegmentGroup,
    sliced: tuple[UrlSegment, ...],
    routes: Sequence[Route],
) -> bool:
    return any(empty_path_match(segment_group, sliced, r) for r in routes)
