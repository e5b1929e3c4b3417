"""Tests for trellis.navigator — end-to-end navigation."""

import pytest

from trellis.config import NavigatorConfig
from trellis.errors import ConfigurationError, NavigationCancelled, RedirectLoopError
from trellis.navigator import Navigation, Navigator
from trellis.routing.route import Route
from trellis.url.tree import UrlTree


class Page:
    def __init__(self, name: str) -> None:
        self.name = name


HOME, ITEM, LOGIN, ROOT = Page("home"), Page("item"), Page("login"), Page("root")


class TestNavigate:
    @pytest.mark.anyio
    async def test_redirect_then_recognize(self) -> None:
        navigator = Navigator([Route(path="a/:id", redirect_to="b/:id"), Route(path="b/:id", component=ITEM)])

        nav = await navigator.navigate("/a/5")

        assert isinstance(nav, Navigation)
        assert str(nav.requested) == "/a/5"
        assert nav.url == "/b/5"
        leaf = nav.state.children(nav.state.root)[0]
        assert leaf.component is ITEM
        assert leaf.params == {"id": "5"}
        assert nav.state.url == "/b/5"

    @pytest.mark.anyio
    async def test_accepts_tree(self) -> None:
        navigator = Navigator([Route(path="home", component=HOME)])
        nav = await navigator.navigate(navigator.parse("/home"))
        assert nav.url == "/home"

    @pytest.mark.anyio
    async def test_lazy_cache_shared_between_navigations(self) -> None:
        calls = 0

        def load(route: Route) -> list[Route]:
            nonlocal calls
            calls += 1
            return [Route(path=":id", component=ITEM)]

        navigator = Navigator([Route(path="items", load_children="items")], load=load)

        first = await navigator.navigate("/items/1")
        second = await navigator.navigate("/items/2")

        assert calls == 1
        assert first.url == "/items/1"
        assert second.url == "/items/2"

    @pytest.mark.anyio
    async def test_guard_redirect_renavigates(self) -> None:
        routes = [
            Route(path="admin", load_children="admin", can_load=[lambda r, s: "/login"]),
            Route(path="login", component=LOGIN),
        ]
        navigator = Navigator(routes, load=lambda r: [Route(path="", component=HOME)])

        nav = await navigator.navigate("/admin")

        assert str(nav.requested) == "/admin"
        assert nav.url == "/login"
        assert nav.state.children(nav.state.root)[0].component is LOGIN

    @pytest.mark.anyio
    async def test_guard_redirect_loop(self) -> None:
        calls = 0

        def guard(route: Route, segments: object) -> str:
            nonlocal calls
            calls += 1
            return "/admin"

        routes = [Route(path="admin", load_children="admin", can_load=[guard])]
        navigator = Navigator(
            routes,
            load=lambda r: [Route(path="", component=HOME)],
            config=NavigatorConfig(max_guard_redirects=3),
        )

        with pytest.raises(RedirectLoopError, match="more than 3 times"):
            await navigator.navigate("/admin")
        assert calls == 4

    @pytest.mark.anyio
    async def test_guard_rejection_propagates(self) -> None:
        routes = [Route(path="admin", load_children="admin", can_load=["deny"])]
        navigator = Navigator(
            routes,
            load=lambda r: [Route(path="", component=HOME)],
            injector={"deny": lambda r, s: False},
        )
        with pytest.raises(NavigationCancelled):
            await navigator.navigate("/admin")

    @pytest.mark.anyio
    async def test_params_inheritance_config(self) -> None:
        routes = [Route(path="team/:id", component=HOME, children=[Route(path="user/:name", component=ITEM)])]
        navigator = Navigator(routes, config=NavigatorConfig(params_inheritance="always", root_component=ROOT))

        nav = await navigator.navigate("/team/5/user/victor")

        assert nav.state.root.component is ROOT
        team = nav.state.children(nav.state.root)[0]
        user = nav.state.children(team)[0]
        assert user.params == {"id": "5", "name": "victor"}

    @pytest.mark.anyio
    async def test_sequential_outlets(self) -> None:
        routes = [Route(path="a", component=HOME), Route(path="b", outlet="aux", component=ITEM)]
        navigator = Navigator(routes, config=NavigatorConfig(concurrent_outlets=False))
        nav = await navigator.navigate("/a(aux:b)")
        assert nav.url == "/a(aux:b)"


class TestNavigatorSetup:
    def test_validates_routes(self) -> None:
        with pytest.raises(ConfigurationError, match="cannot start with a slash"):
            Navigator([Route(path="/bad", component=HOME)])

    def test_validation_can_be_disabled(self) -> None:
        navigator = Navigator([Route(path="/bad", component=HOME)], config=NavigatorConfig(validate_routes=False))
        assert len(navigator.routes) == 1

    def test_parse_and_serialize(self) -> None:
        navigator = Navigator([])
        tree = navigator.parse("/a;k=v/(b//aux:c)?q=1")
        assert isinstance(tree, UrlTree)
        assert navigator.serialize(tree) == "/a;k=v/(b//aux:c)?q=1"

    @pytest.mark.anyio
    async def test_apply_redirects_and_recognize(self) -> None:
        navigator = Navigator(
            [Route(path="", redirect_to="/home", path_match="full"), Route(path="home", component=HOME)]
        )
        tree = await navigator.apply_redirects("/")
        assert str(tree) == "/home"

        state = await navigator.recognize(tree)
        assert state.children(state.root)[0].component is HOME
