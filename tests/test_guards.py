"""Tests for trellis.routing.guards — CanLoad guard evaluation."""

import anyio
import pytest

from trellis.errors import TrellisError
from trellis.routing.guards import Guard, GuardResult, prioritized_guard_value, run_can_load_guards
from trellis.routing.route import Route
from trellis.url.tree import UrlSegment, UrlTree


class Page:
    pass


class AllowAdmins:
    def __init__(self, allowed: bool) -> None:
        self.allowed = allowed
        self.seen: list[str] = []

    def can_load(self, route: Route, segments: list[UrlSegment]) -> bool:
        self.seen.append(route.path or "")
        return self.allowed


def lazy(*guards: object) -> Route:
    return Route(path="admin", load_children="admin", can_load=guards)


def value(result: GuardResult, delay: float = 0):
    async def check() -> GuardResult:
        await anyio.sleep(delay)
        return result

    return check


class TestGuardResolve:
    def test_function(self) -> None:
        fn = lambda route, segments: True  # noqa: E731
        guard = Guard.resolve(fn)
        assert guard.evaluate_fn is fn

    def test_object(self) -> None:
        obj = AllowAdmins(True)
        guard = Guard.resolve(obj)
        assert guard.source is obj

    def test_injector_lookup(self) -> None:
        obj = AllowAdmins(True)
        guard = Guard.resolve("admin-guard", {"admin-guard": obj})
        assert guard.source is obj

    def test_unhashable_token_used_directly(self) -> None:
        class Unhashable:
            __hash__ = None  # type: ignore[assignment]

            def can_load(self, route: Route, segments: list[UrlSegment]) -> bool:
                return True

        token = Unhashable()
        assert Guard.resolve(token, {"x": 1}).source is token

    def test_invalid_token(self) -> None:
        with pytest.raises(TrellisError, match="Invalid CanLoad guard"):
            Guard.resolve("missing", {})

    def test_guard_passes_through(self) -> None:
        guard = Guard.from_function(lambda r, s: True)
        assert Guard.resolve(guard) is guard


class TestGuardEvaluate:
    @pytest.mark.anyio
    async def test_async_guard(self) -> None:
        async def check(route: Route, segments: list[UrlSegment]) -> bool:
            await anyio.sleep(0)
            return False

        assert await Guard.from_function(check).evaluate(lazy(), []) is False

    @pytest.mark.anyio
    async def test_string_becomes_tree(self) -> None:
        result = await Guard.from_function(lambda r, s: "/login?next=admin").evaluate(lazy(), [])
        assert isinstance(result, UrlTree)
        assert str(result) == "/login?next=admin"

    @pytest.mark.anyio
    async def test_invalid_result(self) -> None:
        with pytest.raises(TrellisError, match="Invalid CanLoad guard result"):
            await Guard.from_function(lambda r, s: 42).evaluate(lazy(), [])


class TestPrioritizedGuardValue:
    @pytest.mark.anyio
    async def test_no_checks(self) -> None:
        assert await prioritized_guard_value([]) is True

    @pytest.mark.anyio
    async def test_all_true(self) -> None:
        assert await prioritized_guard_value([value(True), value(True, 0.01)]) is True

    @pytest.mark.anyio
    async def test_first_false(self) -> None:
        assert await prioritized_guard_value([value(True), value(False), value(True)]) is False

    @pytest.mark.anyio
    async def test_earlier_pending_check_wins(self) -> None:
        """A fast later False must not beat a slower earlier redirect."""
        redirect = UrlTree()
        result = await prioritized_guard_value([value(redirect, 0.02), value(False)])
        assert result is redirect

    @pytest.mark.anyio
    async def test_remaining_checks_cancelled(self) -> None:
        finished: list[int] = []

        async def slow() -> GuardResult:
            await anyio.sleep(5)
            finished.append(1)
            return True

        with anyio.fail_after(2):
            assert await prioritized_guard_value([value(False), slow]) is False
        assert finished == []

    @pytest.mark.anyio
    async def test_exception_propagates_unwrapped(self) -> None:
        async def broken() -> GuardResult:
            msg = "guard exploded"
            raise RuntimeError(msg)

        with pytest.raises(RuntimeError, match="guard exploded"):
            await prioritized_guard_value([value(True, 0.01), broken])

    @pytest.mark.anyio
    async def test_first_declared_error_wins(self) -> None:
        """A fast error from a later guard must not beat a slower earlier one."""

        async def slow_broken() -> GuardResult:
            await anyio.sleep(0.02)
            msg = "first guard"
            raise LookupError(msg)

        async def fast_broken() -> GuardResult:
            msg = "second guard"
            raise RuntimeError(msg)

        with pytest.raises(LookupError, match="first guard"):
            await prioritized_guard_value([slow_broken, fast_broken])

    @pytest.mark.anyio
    async def test_earlier_false_beats_later_error(self) -> None:
        async def broken() -> GuardResult:
            msg = "late guard"
            raise RuntimeError(msg)

        assert await prioritized_guard_value([value(False, 0.01), broken]) is False


class TestRunCanLoadGuards:
    @pytest.mark.anyio
    async def test_no_guards(self) -> None:
        assert await run_can_load_guards(lazy(), []) is True

    @pytest.mark.anyio
    async def test_injected_guards(self) -> None:
        allow, deny = AllowAdmins(True), AllowAdmins(False)
        injector = {"allow": allow, "deny": deny}

        outcome = await run_can_load_guards(lazy("allow", "deny"), [UrlSegment("admin")], injector)

        assert outcome is False
        assert allow.seen == ["admin"]
        assert deny.seen == ["admin"]

    @pytest.mark.anyio
    async def test_redirect(self) -> None:
        outcome = await run_can_load_guards(lazy(lambda r, s: "/login"), [])
        assert str(outcome) == "/login"
