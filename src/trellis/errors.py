"""Trellis exception hierarchy.

Shared across the parser, matcher, redirect resolver, recognizer and
navigator so every module raises and catches the same types.

``NoMatch`` and ``AbsoluteRedirect`` are not exceptions: they are
result values (see ``trellis.routing.redirects``), never raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trellis.url.tree import UrlSegmentGroup, UrlTree


class TrellisError(Exception):
    """Base for all trellis-specific errors."""


class ConfigurationError(TrellisError):
    """Raised when a route configuration is structurally invalid.

    ``path`` is the full path of the offending route, built by joining
    the paths of its ancestors (``"admin/users"``).
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid configuration of route '{path}': {reason}")


class UrlParseError(TrellisError):
    """Raised when a URL string does not follow the URL grammar."""


class NamedOutletRedirectError(TrellisError):
    """A relative ``redirect_to`` targets a non-primary outlet."""

    def __init__(self, redirect_to: str) -> None:
        self.redirect_to = redirect_to
        super().__init__(
            f"Only absolute redirects can have named outlets. redirectTo: '{redirect_to}'"
        )


class MissingPositionalParam(TrellisError):
    """A redirect references ``:name`` but the match captured no such segment."""

    def __init__(self, redirect_to: str, token: str) -> None:
        self.redirect_to = redirect_to
        self.token = token
        super().__init__(f"Cannot redirect to '{redirect_to}'. Cannot find '{token}'.")


class CannotMatchAnyRoutes(TrellisError):
    """Every candidate route failed and URL segments remain unconsumed."""

    def __init__(self, segment_group: UrlSegmentGroup | None) -> None:
        self.segment_group = segment_group
        shown = "" if segment_group is None else str(segment_group)
        super().__init__(f"Cannot match any routes. URL Segment: '{shown}'")


class DuplicateOutletName(TrellisError):
    """Two sibling snapshots were recognized for the same outlet."""

    def __init__(self, outlet: str, first: str, second: str) -> None:
        self.outlet = outlet
        super().__init__(
            f"Two segments cannot have the same outlet name: '{first}' and '{second}'."
        )


class NavigationCancelled(TrellisError):
    """A load guard rejected the navigation."""


class NavigationRedirect(TrellisError):
    """A load guard asked for a new navigation instead of loading.

    Not a failure: the navigator catches it and starts over from
    ``url_tree``.
    """

    def __init__(self, url_tree: UrlTree) -> None:
        self.url_tree = url_tree
        super().__init__(f"Navigation redirected to '{url_tree}'")


class RedirectLoopError(TrellisError):
    """Guard-initiated redirects did not settle within the configured bound."""
