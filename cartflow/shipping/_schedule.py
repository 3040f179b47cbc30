"""
Debounced quote scheduling.

Every trigger cancels the pending timer and arms a new one under the next
generation number. A cancelled timer never fires, so passes start in
generation order; only the most recently started generation may be applied,
which the state reducer enforces.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

type Cancel = Callable[[], None]
type QuotePass = Callable[[int], Awaitable[None]]


class Scheduler(Protocol):
    """Call `callback(generation)` after `delay` seconds; the returned callable cancels it."""

    def schedule(self, delay: float, generation: int, callback: Callable[[int], None]) -> Cancel:
        ...


class LoopScheduler:
    """Scheduler backed by the running asyncio loop."""

    def schedule(self, delay: float, generation: int, callback: Callable[[int], None]) -> Cancel:
        handle = asyncio.get_running_loop().call_later(delay, callback, generation)
        return handle.cancel


class QuoteScheduler:
    """
    Debounce shipping quote passes.

    Example:
        quotes = QuoteScheduler(run_pass, delay=0.5)
        quotes.trigger()        # arms the timer
        quotes.trigger()        # re-arms; the first timer never fires
        await quotes.flush()    # skip the wait and run now
    """

    def __init__(
        self,
        run: QuotePass,
        *,
        delay: float = 0.5,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._run = run
        self._delay = delay
        self._scheduler = scheduler or LoopScheduler()
        self._cancel: Cancel | None = None
        self._generation = 0
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def generation(self) -> int:
        """Most recently issued generation."""
        return self._generation

    @property
    def pending(self) -> bool:
        return self._cancel is not None

    def trigger(self) -> int:
        self._disarm()
        self._generation += 1
        self._cancel = self._scheduler.schedule(self._delay, self._generation, self._fire)
        return self._generation

    def _disarm(self) -> None:
        if self._cancel is not None:
            self._cancel()
            self._cancel = None

    def _fire(self, generation: int) -> None:
        self._cancel = None
        logger.debug("quote pass %d started", generation)
        task = asyncio.ensure_future(self._run(generation))
        self._tasks.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("quote pass crashed", exc_info=exc)

    async def flush(self) -> int:
        """Cancel any pending timer, run a pass now and wait for it."""
        self._disarm()
        self._generation += 1
        generation = self._generation
        logger.debug("quote pass %d started (flush)", generation)
        await self._run(generation)
        return generation

    async def drain(self) -> None:
        """Wait for passes already started by timers."""
        while self._tasks:
            await asyncio.wait(tuple(self._tasks))

    async def aclose(self) -> None:
        self._disarm()
        for task in tuple(self._tasks):
            task.cancel()
        for task in tuple(self._tasks):
            try:
                await task
            except asyncio.CancelledError:
                pass


__all__ = ("Cancel", "QuotePass", "Scheduler", "LoopScheduler", "QuoteScheduler")
