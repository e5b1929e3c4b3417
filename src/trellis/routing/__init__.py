"""Route configuration, matching, redirect resolution and recognition.

Two passes turn a requested URL into activated state::

    tree = parse_url("/a/5")
    redirected = await apply_redirects(routes, tree, loader)
    state = recognize(routes, redirected, str(redirected), loader)

Both passes share the matcher and splitter in ``trellis.routing.matching``.
"""

from trellis.routing.guards import Guard, run_can_load_guards
from trellis.routing.loader import RouterConfigLoader
from trellis.routing.recognize import ActivatedRouteSnapshot, RouterStateSnapshot, recognize
from trellis.routing.redirects import AbsoluteRedirect, NoMatch, apply_redirects
from trellis.routing.route import LoadedRouterConfig, Route, UrlMatchResult
from trellis.routing.validate import validate_config

__all__ = [
    "AbsoluteRedirect",
    "ActivatedRouteSnapshot",
    "Guard",
    "LoadedRouterConfig",
    "NoMatch",
    "Route",
    "RouterConfigLoader",
    "RouterStateSnapshot",
    "UrlMatchResult",
    "apply_redirects",
    "recognize",
    "run_can_load_guards",
    "validate_config",
]
