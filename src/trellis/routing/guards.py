"""Load guards — decide whether a lazy child configuration may be fetched.

A guard is either an object with a ``can_load(route, segments)`` method
or a bare function ``fn(route, segments)``. Either may return a value or
an awaitable of one:

- ``True`` — allow
- ``False`` — reject; the navigation is cancelled
- a ``UrlTree`` or URL string — cancel and navigate there instead

Routes list guards in ``Route.can_load``; each entry is looked up in the
navigator's injector mapping first and used as-is when absent.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any

import anyio

from trellis.errors import TrellisError
from trellis.routing.route import Route
from trellis.url.grammar import parse_url
from trellis.url.tree import UrlSegment, UrlTree

logger = logging.getLogger("trellis.guards")

type GuardResult = bool | UrlTree
type GuardFunction = Callable[[Route, Sequence[UrlSegment]], Any]

_PENDING: Any = object()


@dataclass(frozen=True, slots=True)
class Guard:
    """A load guard normalized to one calling convention.

    Build with ``Guard.from_object`` / ``Guard.from_function``, or let
    ``Guard.resolve`` pick based on the token.
    """

    evaluate_fn: GuardFunction
    source: Any = None

    @classmethod
    def from_object(cls, obj: Any) -> Guard:
        return cls(evaluate_fn=obj.can_load, source=obj)

    @classmethod
    def from_function(cls, fn: GuardFunction) -> Guard:
        return cls(evaluate_fn=fn, source=fn)

    @classmethod
    def resolve(cls, token: Any, injector: Mapping[Any, Any] | None = None) -> Guard:
        """Look *token* up in *injector* and wrap whatever it names."""
        target = token
        if injector is not None:
            try:
                target = injector.get(token, token)
            except TypeError:
                # Unhashable tokens cannot be registered, use them directly
                target = token

        if isinstance(target, Guard):
            return target
        if callable(getattr(target, "can_load", None)):
            return cls.from_object(target)
        if callable(target):
            return cls.from_function(target)

        msg = f"Invalid CanLoad guard: {token!r} is neither callable nor has a can_load method"
        raise TrellisError(msg)

    async def evaluate(self, route: Route, segments: Sequence[UrlSegment]) -> GuardResult:
        value = self.evaluate_fn(route, segments)
        if inspect.isawaitable(value):
            value = await value
        return _normalize(value, self.source)


def _normalize(value: Any, source: Any) -> GuardResult:
    if isinstance(value, bool):
        return value
    if isinstance(value, UrlTree):
        return value
    if isinstance(value, str):
        return parse_url(value)
    msg = f"Invalid CanLoad guard result from {source!r}: {value!r} (expected bool, UrlTree or str)"
    raise TrellisError(msg)


async def prioritized_guard_value(checks: Sequence[Callable[[], Awaitable[GuardResult]]]) -> GuardResult:
    """Run *checks* concurrently and combine them with a priority-aware AND.

    The combined value is the first non-``True`` result in declaration
    order, decided as soon as every earlier check has settled. A later
    ``False`` never beats an earlier, still-pending check. ``True`` only
    when every check returns ``True``. Undecided checks are cancelled once
    the outcome is known. A check that raises counts like a non-``True``
    result at its position: the error of the first such check in
    declaration order propagates unchanged.
    """
    if not checks:
        return True

    results: list[Any] = [_PENDING] * len(checks)
    errors: dict[int, Exception] = {}

    def _decided() -> bool:
        for index, result in enumerate(results):
            if index in errors:
                return True
            if result is _PENDING:
                return False
            if result is not True:
                return True
        return True

    async with anyio.create_task_group() as tg:

        async def _run(index: int, check: Callable[[], Awaitable[GuardResult]]) -> None:
            try:
                results[index] = await check()
            except Exception as exc:
                errors[index] = exc
            if _decided():
                tg.cancel_scope.cancel()

        for index, check in enumerate(checks):
            tg.start_soon(_run, index, check)

    for index, result in enumerate(results):
        if index in errors:
            raise errors[index]
        if result is not True:
            return result
    return True


async def run_can_load_guards(
    route: Route,
    segments: Sequence[UrlSegment],
    injector: Mapping[Any, Any] | None = None,
) -> GuardResult:
    """Evaluate every ``can_load`` guard of *route*: ``True``, ``False`` or a redirect tree."""
    if not route.can_load:
        return True

    guards = [Guard.resolve(token, injector) for token in route.can_load]
    outcome = await prioritized_guard_value([partial(g.evaluate, route, segments) for g in guards])
    if outcome is not True:
        logger.debug("CanLoad guards for %r returned %r", route, outcome)
    return outcome
