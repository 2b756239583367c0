"""
Input Queue - client turns waiting to be fed to the agent session.

The WebSocket receive path calls ``enqueue`` synchronously; the agent
session drains ``turns()``, an endless async generator that wakes as soon
as a turn arrives.
"""

import asyncio
from typing import Any, AsyncIterator, Dict

from ...utils.logger import get_logger

logger = get_logger(__name__)


class InputQueue:
    """
    Unbounded FIFO of conversation turns with a single consumer.

    Turns are yielded exactly once, in submission order. ``turns()`` can
    only be iterated by one consumer for the lifetime of the queue.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._draining = False
        self._submitted = 0
        self._consumed = 0

    def enqueue(self, turn: Dict[str, Any]) -> None:
        """Append a turn to the tail."""
        self._queue.put_nowait(turn)
        self._submitted += 1
        logger.debug("Turn queued", submitted=self._submitted, pending=self.pending)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def submitted(self) -> int:
        return self._submitted

    @property
    def consumed(self) -> int:
        return self._consumed

    async def turns(self) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield queued turns forever.

        Suspends while the queue is empty. Never returns on its own; it ends
        only when the consumer closes it or its task is cancelled.

        Raises:
            RuntimeError: if a second consumer tries to drain the queue
        """
        if self._draining:
            raise RuntimeError("InputQueue already has a consumer")
        self._draining = True

        while True:
            turn = await self._queue.get()
            self._consumed += 1
            self._queue.task_done()
            logger.debug("Turn handed to session", consumed=self._consumed)
            yield turn
