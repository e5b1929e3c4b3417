"""Tests for trellis.cli._resolve — route table import resolution."""

import sys
import types

import pytest

from trellis.cli._resolve import resolve_routes
from trellis.routing.route import Route


class Page:
    pass


ROUTES = [Route(path="a", component=Page)]


@pytest.fixture
def _fake_module(monkeypatch: pytest.MonkeyPatch) -> None:
    """Register a fake module with route tables on sys.modules."""
    mod = types.ModuleType("_fake_trellis_app")
    mod.routes = ROUTES  # type: ignore[attr-defined]
    mod.custom = tuple(ROUTES)  # type: ignore[attr-defined]
    mod.factory = lambda: ROUTES  # type: ignore[attr-defined]
    mod.broken_factory = lambda: 1 / 0  # type: ignore[attr-defined]
    mod.not_routes = "just a string"  # type: ignore[attr-defined]
    mod.mixed = [Route(path="a", component=Page), "x"]  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "_fake_trellis_app", mod)


@pytest.mark.usefixtures("_fake_module")
class TestResolveRoutes:
    def test_explicit_attribute(self) -> None:
        assert resolve_routes("_fake_trellis_app:routes") is ROUTES

    def test_tuple(self) -> None:
        assert list(resolve_routes("_fake_trellis_app:custom")) == ROUTES

    def test_default_attribute(self) -> None:
        """Omitting :attr defaults to 'routes'."""
        assert resolve_routes("_fake_trellis_app") is ROUTES

    def test_factory(self) -> None:
        assert resolve_routes("_fake_trellis_app:factory") is ROUTES

    def test_factory_error(self) -> None:
        with pytest.raises(TypeError, match="raised an error"):
            resolve_routes("_fake_trellis_app:broken_factory")

    def test_missing_module(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            resolve_routes("nonexistent_module_xyz:routes")

    def test_missing_attribute(self) -> None:
        with pytest.raises(AttributeError):
            resolve_routes("_fake_trellis_app:does_not_exist")

    def test_not_routes(self) -> None:
        with pytest.raises(TypeError, match="not a sequence of trellis Route"):
            resolve_routes("_fake_trellis_app:not_routes")

    def test_mixed_entries(self) -> None:
        with pytest.raises(TypeError):
            resolve_routes("_fake_trellis_app:mixed")
