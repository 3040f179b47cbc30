"""
Lift — collaborator calls as lazy results.

`from_awaitable` captures a port's exceptions as domain errors; `settled`
turns a fallible branch of a fan-out into one that always succeeds.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable

from kungfu import LazyCoroResult, Ok, Error, Result

from combinators.lift import catching_async

from cartflow._types import NoError, Settled


# ═══════════════════════════════════════════════════════════════════════════════
# Collaborator Calls
# ═══════════════════════════════════════════════════════════════════════════════

def from_awaitable[T, E](
    awaitable_fn: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
) -> LazyCoroResult[T, E]:
    """
    Wrap a collaborator call so whatever it raises comes back as `Error(on_error(exc))`.

    Nothing runs until the result is awaited; every port call in cartflow
    (catalog, vouchers, carrier, cart, orders) goes through here.
    """
    return catching_async(awaitable_fn, on_error=on_error)


def settled[T, E](
    lazy: LazyCoroResult[T, E],
    on_error: Callable[[E], T],
) -> Settled[T]:
    """
    Fold the error branch into a value so the computation always succeeds.

    Used at fan-out points where one branch failing must not fail the join.
    """
    async def _run() -> Result[T, NoError]:
        match await lazy:
            case Ok(value):
                return Ok(value)
            case Error(err):
                return Ok(on_error(err))
    return LazyCoroResult(_run)


__all__ = (
    "catching_async",
    "from_awaitable",
    "settled",
)
