"""
Session Context - one coordinator owning all relay state.

Replaces process-wide globals: the aiohttp app holds one SessionContext and
every handler reaches the gate, queue, bridge, config and dispatcher
through it. Tests can build as many independent contexts as they like.
"""

from typing import Optional

from .runtime.config_store import ConfigStore
from .runtime.connection_gate import ConnectionGate
from .runtime.input_queue import InputQueue
from .runtime.query_engine import ClaudeQueryEngine, QueryEngine
from .runtime.stream_bridge import BridgeState, StreamBridge
from .files import FileCommandDispatcher
from ..utils.logger import get_logger

logger = get_logger(__name__)


class SessionContext:
    """Config Store + Connection Gate + Input Queue + Stream Bridge + files."""

    def __init__(self, workspace_dir: str, engine: Optional[QueryEngine] = None):
        self.dispatcher = FileCommandDispatcher(workspace_dir)
        self.workspace_dir = self.dispatcher.workspace_dir
        self.config_store = ConfigStore()
        self.input_queue = InputQueue()
        self.gate = ConnectionGate(on_admit=self._ensure_session)
        self.bridge = StreamBridge(
            engine=engine or ClaudeQueryEngine(),
            input_queue=self.input_queue,
            deliver=self.gate.send,
            workspace_dir=self.workspace_dir,
        )

    async def _ensure_session(self) -> None:
        # The session is created once, on the first admitted connection,
        # and survives every later disconnect/reconnect.
        if self.bridge.state is BridgeState.UNINITIALIZED:
            await self.bridge.start(self.config_store.snapshot())

    def status(self) -> dict:
        return {
            "connected": self.gate.is_connected,
            "session": self.bridge.state.value,
            "pending_turns": self.input_queue.pending,
            "workspace": self.workspace_dir,
        }

    async def shutdown(self) -> None:
        active = self.gate.active
        if active is not None and not active.closed:
            await active.close()
        await self.bridge.stop()
        logger.info("Session context shut down")
