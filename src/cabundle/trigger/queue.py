"""Bounded queue between trigger sources and the reconciliation loop."""

from __future__ import annotations

import asyncio
import logging

from cabundle.models.trigger import TriggerEvent

_logger = logging.getLogger(__name__)


class TriggerQueue:
    """FIFO of trigger events with drop-when-full writes and a close signal.

    Writers never block: ``offer`` drops the event when the queue is full.
    After ``close`` no writes are accepted and ``get`` returns ``None``
    once the remaining events have been drained.
    """

    def __init__(self, maxsize: int = 1) -> None:
        if maxsize < 1:
            raise ValueError(f"maxsize must be at least 1, got {maxsize}")
        self._maxsize = maxsize
        # One spare slot for the close sentinel.
        self._queue: asyncio.Queue[TriggerEvent | None] = asyncio.Queue(maxsize + 1)
        self._closed = False
        self._pending = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return self._pending

    def offer(self, event: TriggerEvent) -> bool:
        """Enqueue *event* without waiting. Returns ``False`` if it was dropped."""
        if self._closed:
            _logger.debug("Trigger queue closed; dropping %s event", event.source)
            return False
        if self._pending >= self._maxsize:
            _logger.debug("Trigger queue full; dropping %s event", event.source)
            return False
        self._queue.put_nowait(event)
        self._pending += 1
        return True

    def close(self) -> None:
        """Stop accepting events and wake any reader once drained."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    async def get(self) -> TriggerEvent | None:
        """Wait for the next event; ``None`` means closed and drained."""
        item = await self._queue.get()
        if item is None:
            # Leave the sentinel for any other reader.
            self._queue.put_nowait(None)
            return None
        self._pending -= 1
        return item
