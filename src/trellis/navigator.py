"""Navigator — wires the parser, redirect resolver and recognizer together.

One navigator owns one route configuration and one lazy-load cache that
every navigation shares::

    navigator = Navigator(routes, load=fetch_children)
    nav = await navigator.navigate("/team/33/user/victor")
    str(nav.redirected)          # the URL after redirects
    nav.state.root               # the root ActivatedRouteSnapshot

It is not a router runtime: nothing is activated, rendered
or emitted. Callers decide what a ``Navigation`` means.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from trellis.config import NavigatorConfig
from trellis.errors import NavigationRedirect, RedirectLoopError
from trellis.routing.loader import LoadFunction, RouterConfigLoader
from trellis.routing.recognize import RouterStateSnapshot, recognize
from trellis.routing.redirects import apply_redirects
from trellis.routing.route import Route
from trellis.routing.validate import validate_config
from trellis.url.grammar import parse_url, serialize_url
from trellis.url.tree import UrlTree

logger = logging.getLogger("trellis.navigator")


@dataclass(frozen=True, slots=True)
class Navigation:
    """The outcome of one ``Navigator.navigate`` call.

    ``requested`` is the tree the caller asked for; ``redirected`` the tree
    after redirects (and any guard-initiated renavigation) were applied.
    """

    requested: UrlTree
    redirected: UrlTree
    state: RouterStateSnapshot

    @property
    def url(self) -> str:
        return serialize_url(self.redirected)


class Navigator:
    """Resolve URLs against a fixed route configuration."""

    __slots__ = ("config", "injector", "loader", "routes")

    def __init__(
        self,
        routes: Sequence[Route],
        load: LoadFunction | None = None,
        injector: Mapping[Any, Any] | None = None,
        config: NavigatorConfig | None = None,
    ) -> None:
        self.config = config if config is not None else NavigatorConfig()
        self.routes = tuple(routes)
        self.injector = injector
        if self.config.validate_routes:
            validate_config(self.routes)
        self.loader = RouterConfigLoader(load, validate=self.config.validate_routes)

    def parse(self, url: str) -> UrlTree:
        return parse_url(url)

    def serialize(self, tree: UrlTree) -> str:
        return serialize_url(tree)

    async def apply_redirects(self, url: str | UrlTree) -> UrlTree:
        """Return the tree with every redirect applied and lazy children loaded."""
        tree = self.parse(url) if isinstance(url, str) else url
        return await apply_redirects(
            self.routes,
            tree,
            self.loader,
            self.injector,
            concurrent_outlets=self.config.concurrent_outlets,
        )

    async def recognize(self, tree: UrlTree) -> RouterStateSnapshot:
        """Build the snapshot tree for an already redirected *tree*."""
        return recognize(
            self.routes,
            tree,
            serialize_url(tree),
            self.loader,
            self.config.params_inheritance,
            self.config.root_component,
        )

    async def navigate(self, url: str | UrlTree) -> Navigation:
        """Resolve *url* end to end.

        A CanLoad guard that returns a URL restarts the navigation there,
        at most ``config.max_guard_redirects`` times; one more raises
        ``RedirectLoopError``. ``NavigationCancelled`` and the matching
        errors propagate unchanged.
        """
        requested = self.parse(url) if isinstance(url, str) else url
        target = requested
        redirects = 0

        while True:
            try:
                redirected = await self.apply_redirects(target)
            except NavigationRedirect as exc:
                redirects += 1
                if redirects > self.config.max_guard_redirects:
                    msg = (
                        f"Navigation to '{requested}' was redirected by guards more than "
                        f"{self.config.max_guard_redirects} times (last target '{exc.url_tree}')"
                    )
                    raise RedirectLoopError(msg) from exc
                logger.info("Guard redirected navigation from %s to %s", target, exc.url_tree)
                target = exc.url_tree
                continue

            state = await self.recognize(redirected)
            logger.debug("Navigated %s -> %s", requested, redirected)
            return Navigation(requested=requested, redirected=redirected, state=state)
