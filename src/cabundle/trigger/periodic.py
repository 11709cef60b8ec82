"""Timer-driven trigger source.

Wakes the reconciliation loop at a fixed interval whether or not anything
changed in the cluster, so upstream bundle changes are picked up without a
watch on the HTTP source.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum

from cabundle.models.trigger import TriggerEvent, TriggerSource
from cabundle.trigger.queue import TriggerQueue

_logger = logging.getLogger(__name__)


class TriggerState(StrEnum):
    IDLE = "idle"
    STOPPED = "stopped"


class PeriodicTrigger:
    """Enqueue one event per interval until stopped.

    The trigger only ever writes to the queue; it never touches the
    cluster or the network. Stopping is terminal: the timer is cancelled,
    the queue is closed for writers and no further events are emitted.
    """

    def __init__(
        self,
        queue: TriggerQueue,
        *,
        interval: float,
        namespace: str,
        name: str,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._queue = queue
        self._interval = interval
        self._namespace = namespace
        self._name = name
        self._sleep = sleep
        self._state = TriggerState.IDLE
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> TriggerState:
        return self._state

    def fire(self) -> bool:
        """Emit one periodic event. Returns ``False`` if stopped or dropped."""
        if self._state is TriggerState.STOPPED:
            return False
        _logger.debug("Enqueuing periodic event for %s/%s", self._namespace, self._name)
        event = TriggerEvent(
            name=self._name,
            namespace=self._namespace,
            source=TriggerSource.PERIODIC,
        )
        return self._queue.offer(event)

    async def run(self) -> None:
        """Timer loop. Returns after :meth:`stop`; always leaves the trigger stopped."""
        try:
            while self._state is TriggerState.IDLE:
                await self._sleep(self._interval)
                if self._state is not TriggerState.IDLE:
                    break
                self.fire()
        finally:
            self.stop()

    def start(self) -> asyncio.Task[None]:
        """Run the timer loop as a background task (idempotent)."""
        if self._task is None:
            self._task = asyncio.create_task(self.run(), name="cabundle-periodic-trigger")
        return self._task

    def stop(self) -> None:
        """Transition to STOPPED. Safe to call more than once."""
        if self._state is TriggerState.STOPPED:
            return
        self._state = TriggerState.STOPPED
        self._queue.close()
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        _logger.debug("Periodic trigger stopped")

    async def aclose(self) -> None:
        """Stop and wait for the timer task to finish."""
        self.stop()
        task = self._task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
