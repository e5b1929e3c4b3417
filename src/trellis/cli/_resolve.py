"""Route table import resolution — resolves ``"module:attribute"`` strings to route lists.

Used by ``trellis resolve`` to locate a route configuration from a
user-supplied import string.
"""

import importlib
from collections.abc import Sequence

from trellis.routing.route import Route


def resolve_routes(import_string: str) -> Sequence[Route]:
    """Resolve an import string to a route configuration.

    Accepts ``"module:attribute"`` format.  When the attribute portion
    is omitted, defaults to ``"routes"`` (e.g. ``"myapp"`` resolves to
    ``myapp.routes``).

    Supports factory functions: if the resolved object is callable and
    not already a sequence, it will be called.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not a sequence of ``Route``.

    """
    module_path, _, attr_name = import_string.partition(":")
    if not attr_name:
        attr_name = "routes"

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    if callable(obj) and not isinstance(obj, (list, tuple)):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if not isinstance(obj, (list, tuple)) or not all(isinstance(r, Route) for r in obj):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a sequence of trellis Route"
        raise TypeError(msg)

    return obj
