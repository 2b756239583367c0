"""
Stream Bridge - owns the single agent session for the process lifetime.

    InputQueue.turns() ──▶ QuerySession ──▶ deliver(sdk_message)
                               ▲
              interrupt() ─────┘

State machine:
    UNINITIALIZED ──start()──▶ RUNNING ──session raises──▶ FAILED
                                  │
                                  └──session ends / stop()──▶ CLOSED

Output delivery is at-most-once and best-effort: events produced while no
client is connected are dropped, never buffered. A failed session is not
restarted.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from .errors import SessionFailure
from .input_queue import InputQueue
from .query_engine import QueryEngine, QuerySession, build_query_options, serialize_event
from .types import QueryConfig, error_event, sdk_message_event
from ...utils.logger import get_logger

logger = get_logger(__name__)

Deliver = Callable[[Dict[str, Any]], Awaitable[bool]]


class BridgeState(str, Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    FAILED = "failed"
    CLOSED = "closed"


class StreamBridge:
    """Feeds queued turns to the agent session and forwards its output."""

    def __init__(
        self,
        engine: QueryEngine,
        input_queue: InputQueue,
        deliver: Deliver,
        workspace_dir: str,
    ):
        self._engine = engine
        self._input_queue = input_queue
        self._deliver = deliver
        self._workspace_dir = workspace_dir

        self._state = BridgeState.UNINITIALIZED
        self._session: Optional[QuerySession] = None
        self._task: Optional[asyncio.Task] = None
        self._config: Optional[QueryConfig] = None
        self._error: Optional[str] = None
        self._forwarded = 0
        self._dropped = 0

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def config(self) -> Optional[QueryConfig]:
        """Configuration the session was created with."""
        return self._config

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def forwarded(self) -> int:
        return self._forwarded

    @property
    def dropped(self) -> int:
        return self._dropped

    async def start(self, config: QueryConfig) -> None:
        """
        Open the agent session. Only the first call has any effect.

        Args:
            config: Snapshot of the Config Store, read exactly once here
        """
        if self._state is not BridgeState.UNINITIALIZED:
            logger.debug("Session already created", state=self._state.value)
            return

        self._config = config
        options = build_query_options(config, self._workspace_dir)
        self._state = BridgeState.RUNNING
        self._task = asyncio.create_task(self._run(options), name="stream-bridge")
        logger.info("Agent session starting", cwd=options.cwd, model=options.model or "default")

    async def _run(self, options) -> None:
        try:
            self._session = await self._engine.open(self._input_queue.turns(), options)
            logger.info("Agent session open")

            async for event in self._session:
                await self._forward(event)

            self._state = BridgeState.CLOSED
            logger.warning("Agent session ended", forwarded=self._forwarded)

        except asyncio.CancelledError:
            self._state = BridgeState.CLOSED
            raise

        except Exception as e:
            self._state = BridgeState.FAILED
            self._error = str(e) or type(e).__name__
            logger.exception("Error processing agent messages", error=self._error)
            await self._deliver(error_event(self._error))

        finally:
            # The session is closed by the task that opened it
            await self._close_session()

    async def _forward(self, event: Any) -> None:
        delivered = await self._deliver(sdk_message_event(serialize_event(event)))
        if delivered:
            self._forwarded += 1
        else:
            self._dropped += 1
            logger.debug("No live connection, dropped agent event", dropped=self._dropped)

    async def _close_session(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        try:
            await session.close()
        except Exception:
            logger.exception("Error closing agent session")

    async def interrupt(self) -> bool:
        """
        Cancel the turn in flight. Queued turns are kept.

        Returns:
            True if the interrupt reached a running session

        Raises:
            SessionFailure: if the session rejected the interrupt
        """
        if self._state is not BridgeState.RUNNING or self._session is None:
            logger.info("Interrupt ignored, no running session", state=self._state.value)
            return False

        try:
            await self._session.interrupt()
        except Exception as e:
            logger.exception("Interrupt failed")
            raise SessionFailure(f"Failed to interrupt: {e}") from e

        logger.info("Interrupt forwarded to agent session")
        return True

    async def stop(self) -> None:
        """Tear down the session. Used on application shutdown only."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        if self._state is BridgeState.RUNNING:
            self._state = BridgeState.CLOSED
        logger.info("Stream bridge stopped", forwarded=self._forwarded, dropped=self._dropped)
