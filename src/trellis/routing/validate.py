"""Structural validation of route configurations.

Run once when a navigator is built and again for every lazily loaded
child configuration. Errors name the full path of the offending route.
"""

from collections.abc import Sequence

from trellis.errors import ConfigurationError
from trellis.routing.route import Route
from trellis.url.tree import PRIMARY_OUTLET

_FULL_PATH_HINT = "The default value of 'pathMatch' is 'prefix', but often the intent is to use 'full'."


def validate_config(routes: Sequence[Route], parent_path: str = "") -> None:
    """Validate *routes* recursively, raising ``ConfigurationError`` on the first problem."""
    for route in routes:
        full_path = get_full_path(parent_path, route)
        _validate_node(route, full_path)


def _validate_node(route: object, full_path: str) -> None:
    if route is None:
        raise ConfigurationError(full_path, "Encountered undefined route.")
    if isinstance(route, (list, tuple)):
        raise ConfigurationError(full_path, "Array cannot be specified")
    if not isinstance(route, Route):
        raise ConfigurationError(full_path, f"expected a Route, got {type(route).__name__}")

    has_children = route.children is not None
    has_lazy = route.load_children is not None
    has_redirect = route.redirect_to is not None

    if (
        route.component is None
        and not has_children
        and not has_lazy
        and route.outlet
        and route.outlet != PRIMARY_OUTLET
    ):
        raise ConfigurationError(
            full_path,
            "a componentless route without children or loadChildren cannot have a named outlet set",
        )
    if has_redirect and has_children:
        raise ConfigurationError(full_path, "redirectTo and children cannot be used together")
    if has_redirect and has_lazy:
        raise ConfigurationError(full_path, "redirectTo and loadChildren cannot be used together")
    if has_children and has_lazy:
        raise ConfigurationError(full_path, "children and loadChildren cannot be used together")
    if has_redirect and route.component is not None:
        raise ConfigurationError(full_path, "redirectTo and component cannot be used together")
    if route.path is not None and route.matcher is not None:
        raise ConfigurationError(full_path, "path and matcher cannot be used together")
    if not has_redirect and route.component is None and not has_children and not has_lazy:
        raise ConfigurationError(
            full_path,
            "One of the following must be provided: component, redirectTo, children or loadChildren",
        )
    if route.path is None and route.matcher is None:
        raise ConfigurationError(full_path, "routes must have either a path or a matcher specified")
    if route.path is not None and route.path.startswith("/"):
        raise ConfigurationError(full_path, "path cannot start with a slash")
    if route.path == "" and has_redirect and route.path_match is None:
        raise ConfigurationError(
            full_path,
            f"redirectTo '{route.redirect_to}' on an empty path needs pathMatch. {_FULL_PATH_HINT}",
        )
    if route.path_match is not None and route.path_match not in ("prefix", "full"):
        raise ConfigurationError(full_path, "pathMatch can only be set to 'prefix' or 'full'")

    if route.children is not None:
        validate_config(route.children, full_path)


def get_full_path(parent_path: str, route: object) -> str:
    """Join a parent path with a route's own path for error messages."""
    path = getattr(route, "path", None)
    if route is None:
        return parent_path
    if not parent_path and not path:
        return ""
    if parent_path and not path:
        return f"{parent_path}/"
    if not parent_path and path:
        return path
    return f"{parent_path}/{path}"
