"""Lazy child-configuration loading with a per-route memo.

The external collaborator is any callable ``load(route)`` returning a
``LoadedRouterConfig``, a plain sequence of routes, or an awaitable of
either. Results are cached by route identity inside the loader, not on
the route, so route entries stay immutable and shareable::

    loader = RouterConfigLoader(fetch_admin_routes)
    config = await loader.load(admin_route)   # calls fetch_admin_routes
    config = await loader.load(admin_route)   # cached
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import anyio

from trellis.errors import TrellisError
from trellis.routing.route import LoadedRouterConfig, Route
from trellis.routing.validate import get_full_path, validate_config

logger = logging.getLogger("trellis.loader")

type LoadFunction = Callable[[Route], LoadedRouterConfig | Sequence[Route] | Awaitable[Any]]


class RouterConfigLoader:
    """Fetch each route's lazy configuration at most once.

    Concurrent requests for the same route share a single in-flight call.
    A failed load is not cached; the next request tries again.
    """

    __slots__ = ("_inflight", "_load", "_loaded", "_parent_paths", "validate")

    def __init__(self, load: LoadFunction | None = None, *, validate: bool = True) -> None:
        self._load = load
        self.validate = validate
        # id(route) -> (route, config); the route is held so its id stays unique
        self._loaded: dict[int, tuple[Route, LoadedRouterConfig]] = {}
        self._inflight: dict[int, anyio.Event] = {}
        # id(route) -> (route, path of its parent) for every lazy route seen
        self._parent_paths: dict[int, tuple[Route, str]] = {}

    def register(self, routes: Sequence[Route], parent_path: str = "") -> None:
        """Record where each lazy route in *routes* sits, for error messages."""
        for route in routes:
            if not isinstance(route, Route):
                continue
            if route.load_children is not None:
                self._parent_paths[id(route)] = (route, parent_path)
            if route.children is not None:
                self.register(route.children, get_full_path(parent_path, route))

    def full_path(self, route: Route) -> str:
        """*route*'s path joined onto its ancestors' paths, where known."""
        entry = self._parent_paths.get(id(route))
        parent_path = entry[1] if entry is not None and entry[0] is route else ""
        return get_full_path(parent_path, route)

    def get_loaded(self, route: Route) -> LoadedRouterConfig | None:
        """Return the cached configuration for *route*, or ``None``."""
        entry = self._loaded.get(id(route))
        if entry is not None and entry[0] is route:
            return entry[1]
        return None

    async def load(self, route: Route) -> LoadedRouterConfig:
        """Return *route*'s child configuration, fetching it on first use."""
        key = id(route)
        while True:
            cached = self.get_loaded(route)
            if cached is not None:
                logger.debug("Lazy configuration cache hit for %r", route)
                return cached
            pending = self._inflight.get(key)
            if pending is None:
                break
            await pending.wait()

        done = anyio.Event()
        self._inflight[key] = done
        try:
            config = await self._fetch(route)
            self._loaded[key] = (route, config)
            return config
        finally:
            del self._inflight[key]
            done.set()

    async def _fetch(self, route: Route) -> LoadedRouterConfig:
        if self._load is None:
            msg = f"No configuration loader available for lazy route {route!r}"
            raise TrellisError(msg)

        logger.debug("Loading lazy configuration for %r", route)
        result = self._load(route)
        if inspect.isawaitable(result):
            result = await result

        config = result if isinstance(result, LoadedRouterConfig) else LoadedRouterConfig(tuple(result))
        full_path = self.full_path(route)
        if self.validate:
            validate_config(config.routes, full_path)
        self.register(config.routes, full_path)
        return config
