"""Cancellable "first settled wins" races over awaitables.

Each Race owns at most one live race. Starting a new one cancels the
previous race first, so a stale result can never be reported. Cancellation
is delivered by rejecting the cancel future the running race is also
waiting on; a monotonic generation counter guards the callback as well.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from formstate.errors import ValidationSuperseded
from formstate.validation.types import Resolved, Reveal

logger = logging.getLogger(__name__)

# Settle callback signature: (generation, resolved outcome)
SettleFn = Callable[[int, Resolved], Any]


class Race:
    """A supersedable race between awaitables.

    Only the first awaitable to settle is observed. An awaitable that
    raises settles the race as ``None``; the losers are cancelled.

    Example:
        race = Race("username")
        race.start([check_remote(value)], on_settle)
        ...
        race.cancel()  # on_settle will not be called
    """

    def __init__(self, name: str = ""):
        self.name = name
        self.generation = 0
        self._cancel: asyncio.Future | None = None
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        """True while a race is running and has not been cancelled."""
        return self._cancel is not None and not self._cancel.done()

    def start(
        self,
        awaitables: Iterable[Awaitable[Resolved]],
        callback: SettleFn,
        generation: int | None = None,
    ) -> int:
        """Start a new race, superseding the current one.

        Args:
            awaitables: The pending checks to race
            callback: Called with (generation, outcome) when the race settles
            generation: Generation to tag this race with; defaults to the
                next value of the internal counter

        Returns:
            The generation assigned to the new race

        Raises:
            ValueError: If there is nothing to race
            RuntimeError: If no event loop is running
        """
        awaitables = list(awaitables)
        if not awaitables:
            raise ValueError("A race needs at least one awaitable")
        loop = asyncio.get_running_loop()
        self.cancel()

        self.generation = self.generation + 1 if generation is None else generation
        cancel = loop.create_future()
        self._cancel = cancel
        self._task = loop.create_task(
            self._run(awaitables, cancel, self.generation, callback),
            name=f"formstate-race-{self.name}-{self.generation}",
        )
        logger.debug("Started race for '%s' (generation %s)", self.name, self.generation)
        return self.generation

    def cancel(self) -> bool:
        """Cancel the live race, if any.

        Returns:
            True if a running race was cancelled
        """
        cancel, self._cancel = self._cancel, None
        if cancel is None or cancel.done():
            return False
        cancel.set_exception(ValidationSuperseded(self.name))
        logger.debug("Cancelled race for '%s' (generation %s)", self.name, self.generation)
        return True

    async def wait(self) -> None:
        """Wait until the most recently started race task has finished."""
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait([task])

    async def _run(
        self,
        awaitables: list[Awaitable[Resolved]],
        cancel: asyncio.Future,
        generation: int,
        callback: SettleFn,
    ) -> None:
        tasks = [asyncio.ensure_future(a) for a in awaitables]
        try:
            done, _ = await asyncio.wait(
                [*tasks, cancel], return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        for task in tasks:
            if task in done and not task.cancelled():
                # Mark losing failures as retrieved; the winner is logged below
                task.exception()

        if cancel in done:
            # Retrieve the rejection so it is never reported as unhandled
            cancel.exception()
            return

        if self._cancel is cancel:
            self._cancel = None
        cancel.cancel()

        if generation != self.generation:
            logger.debug("Discarding superseded race for '%s' (generation %s)", self.name, generation)
            return

        # Several awaitables can finish in the same loop iteration;
        # declaration order breaks the tie
        winner = next(task for task in tasks if task in done)
        try:
            callback(generation, self._outcome(winner))
        except Exception:
            # The race task result is never retrieved
            logger.exception(
                "Settle callback for '%s' failed (generation %s)", self.name, generation
            )

    def _outcome(self, task: asyncio.Future) -> Resolved:
        if task.cancelled():
            return None
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "Async validator for '%s' raised %s: %s; treating as valid",
                self.name,
                type(exc).__name__,
                exc,
            )
            return None

        result = task.result()
        if result is not None and not isinstance(result, (str, Reveal)):
            logger.warning(
                "Async validator for '%s' resolved to %s; expected a message, "
                "a Reveal or None. Treating as valid",
                self.name,
                type(result).__name__,
            )
            return None
        return result
