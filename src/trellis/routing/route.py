"""Route configuration entries and match-result records."""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from trellis.url.tree import PRIMARY_OUTLET, UrlSegment, UrlSegmentGroup

type PathMatch = Literal["prefix", "full"]


@dataclass(frozen=True, slots=True)
class UrlMatchResult:
    """What a matcher consumed and which segments it bound to names."""

    consumed: tuple[UrlSegment, ...]
    pos_params: Mapping[str, UrlSegment] = field(default_factory=dict)


type UrlMatcher = Callable[[Sequence[UrlSegment], UrlSegmentGroup, Route], UrlMatchResult | None]


@dataclass(frozen=True, slots=True, eq=False)
class Route:
    """One entry of a route configuration.

    Routes compare and hash by identity: the lazy-load cache and the
    recognizer's empty-path merge both key on "this exact entry".

    ``path`` and ``matcher`` are mutually exclusive. ``outlet`` defaults
    to the primary outlet. ``load_children`` is opaque to trellis and
    handed to the configured loader; ``can_load`` holds guard tokens.
    """

    path: str | None = None
    path_match: PathMatch | None = None
    matcher: UrlMatcher | None = None
    component: Any = None
    redirect_to: str | None = None
    outlet: str | None = None
    children: Sequence["Route"] | None = None
    load_children: Any = None
    can_load: Sequence[Any] = ()
    data: Mapping[str, Any] = field(default_factory=dict)
    resolve: Mapping[str, Any] = field(default_factory=dict)
    title: str | None = None

    def __repr__(self) -> str:
        parts = [f"path={self.path!r}"]
        if self.outlet:
            parts.append(f"outlet={self.outlet!r}")
        if self.redirect_to is not None:
            parts.append(f"redirect_to={self.redirect_to!r}")
        return f"Route({', '.join(parts)})"


@dataclass(frozen=True, slots=True)
class LoadedRouterConfig:
    """A lazily fetched child configuration and its opaque loader handle."""

    routes: Sequence[Route]
    handle: Any = None


def get_outlet(route: Route) -> str:
    return route.outlet or PRIMARY_OUTLET


def group_routes_by_outlet(routes: Sequence[Route]) -> dict[str, list[Route]]:
    """Routes keyed by outlet, in order of each outlet's first route."""
    groups: dict[str, list[Route]] = {}
    for route in routes:
        groups.setdefault(get_outlet(route), []).append(route)
    return groups


def sort_by_matching_outlets(routes: Sequence[Route], outlet: str) -> list[Route]:
    """Routes for *outlet* first, then the rest, each in declaration order."""
    groups = group_routes_by_outlet(routes)
    matching = groups.get(outlet, [])
    matching.extend(r for r in routes if get_outlet(r) != outlet)
    return matching
