"""Trellis — URL trees, redirects and route recognition.

Parses hierarchical URLs with named outlets and matrix parameters, resolves
redirects against a declarative route table (loading lazy children behind
load guards), and recognizes the result as a tree of activated snapshots.

Basic usage::

    from trellis import Navigator, Route

    routes = [
        Route(path="", redirect_to="/home", path_match="full"),
        Route(path="home", component=Home),
        Route(path="team/:id", component=Team),
    ]
    navigator = Navigator(routes)
    nav = await navigator.navigate("/team/33;open=true?debug=1")
    nav.state.root
"""

__version__ = "0.1.0"
__all__ = [
    "ActivatedRouteSnapshot",
    "CannotMatchAnyRoutes",
    "ConfigurationError",
    "Navigation",
    "NavigationCancelled",
    "NavigationRedirect",
    "Navigator",
    "NavigatorConfig",
    "PRIMARY_OUTLET",
    "Route",
    "RouterStateSnapshot",
    "TrellisError",
    "UrlParseError",
    "UrlSegment",
    "UrlSegmentGroup",
    "UrlTree",
    "apply_redirects",
    "parse_url",
    "recognize",
    "serialize_url",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import trellis`` fast while providing a clean top-level API.
    """
    if name in ("Navigator", "Navigation"):
        from trellis import navigator as _nav

        return getattr(_nav, name)

    if name == "NavigatorConfig":
        from trellis.config import NavigatorConfig

        return NavigatorConfig

    if name == "Route":
        from trellis.routing.route import Route

        return Route

    if name in ("ActivatedRouteSnapshot", "RouterStateSnapshot", "apply_redirects", "recognize"):
        import trellis.routing as _routing

        return getattr(_routing, name)

    if name in ("PRIMARY_OUTLET", "UrlSegment", "UrlSegmentGroup", "UrlTree"):
        from trellis.url import tree as _tree

        return getattr(_tree, name)

    if name in ("parse_url", "serialize_url"):
        from trellis.url import grammar as _grammar

        return getattr(_grammar, name)

    if name in (
        "CannotMatchAnyRoutes",
        "ConfigurationError",
        "NavigationCancelled",
        "NavigationRedirect",
        "TrellisError",
        "UrlParseError",
    ):
        from trellis import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
