"""Tests for trellis.errors — exception hierarchy and messages."""

import pytest

from trellis.errors import (
    CannotMatchAnyRoutes,
    ConfigurationError,
    DuplicateOutletName,
    MissingPositionalParam,
    NamedOutletRedirectError,
    NavigationCancelled,
    NavigationRedirect,
    RedirectLoopError,
    TrellisError,
    UrlParseError,
)
from trellis.url.grammar import parse_url
from trellis.url.tree import UrlSegment, UrlSegmentGroup


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [
            CannotMatchAnyRoutes,
            ConfigurationError,
            DuplicateOutletName,
            MissingPositionalParam,
            NamedOutletRedirectError,
            NavigationCancelled,
            NavigationRedirect,
            RedirectLoopError,
            UrlParseError,
        ],
    )
    def test_subclasses_trellis_error(self, cls: type[Exception]) -> None:
        assert issubclass(cls, TrellisError)


class TestMessages:
    def test_configuration_error(self) -> None:
        err = ConfigurationError("admin/users", "path cannot start with a slash")
        assert err.path == "admin/users"
        assert str(err) == "Invalid configuration of route 'admin/users': path cannot start with a slash"

    def test_cannot_match(self) -> None:
        err = CannotMatchAnyRoutes(UrlSegmentGroup([UrlSegment("a"), UrlSegment("b")]))
        assert str(err) == "Cannot match any routes. URL Segment: 'a/b'"

    def test_cannot_match_without_group(self) -> None:
        assert CannotMatchAnyRoutes(None).segment_group is None

    def test_named_outlet_redirect(self) -> None:
        assert "redirectTo: 'b(aux:c)'" in str(NamedOutletRedirectError("b(aux:c)"))

    def test_duplicate_outlet(self) -> None:
        err = DuplicateOutletName("aux", "b", "c")
        assert err.outlet == "aux"
        assert str(err) == "Two segments cannot have the same outlet name: 'b' and 'c'."

    def test_navigation_redirect_carries_tree(self) -> None:
        tree = parse_url("/login")
        err = NavigationRedirect(tree)
        assert err.url_tree is tree
        assert "/login" in str(err)
