"""
Connection Gate - admits at most one live client connection.

A second connection is told ``Server already has an active connection``
and closed at once; the live one is left untouched. There is no waiting
list.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from .errors import ConnectionRejected
from .types import connected_event, error_event
from ...utils.logger import get_logger

logger = get_logger(__name__)


class Connection(Protocol):
    """What the gate needs from a transport handle (aiohttp WebSocketResponse)."""

    @property
    def closed(self) -> bool: ...

    async def send_json(self, data: Any) -> None: ...

    async def close(self) -> Any: ...


class ConnectionGate:
    """Single-slot registry for the live connection."""

    def __init__(self, on_admit: Optional[Callable[[], Awaitable[None]]] = None):
        """
        Args:
            on_admit: Called after every successful admission; the session
                context uses it to create the agent session on first use
        """
        self._active: Optional[Connection] = None
        self._on_admit = on_admit

    @property
    def active(self) -> Optional[Connection]:
        return self._active

    @property
    def is_connected(self) -> bool:
        return self._active is not None

    async def accept(self, connection: Connection) -> bool:
        """
        Try to register ``connection`` as the live one.

        Returns:
            True if admitted, False if rejected (and already closed)
        """
        if self._active is not None:
            rejection = ConnectionRejected()
            logger.warning("Rejecting connection", reason=str(rejection))
            await self._send_to(connection, error_event(str(rejection)))
            await connection.close()
            return False

        self._active = connection
        logger.info("Connection accepted")
        await self._send_to(connection, connected_event())

        if self._on_admit is not None:
            await self._on_admit()
        return True

    def release(self, connection: Connection) -> bool:
        """
        Clear the slot if ``connection`` is the live one.

        A stale close arriving after a newer connection was admitted is
        ignored.
        """
        if self._active is not connection:
            logger.debug("Ignoring release of a connection that is not live")
            return False
        self._active = None
        logger.info("Connection released")
        return True

    async def send(self, payload: Dict[str, Any]) -> bool:
        """
        Deliver ``payload`` to the live connection, if there is one.

        Returns:
            False when there was nobody to deliver to or the send failed
        """
        connection = self._active
        if connection is None:
            return False
        return await self._send_to(connection, payload)

    @staticmethod
    async def _send_to(connection: Connection, payload: Dict[str, Any]) -> bool:
        if connection.closed:
            return False
        try:
            await connection.send_json(payload)
        except (ConnectionError, RuntimeError) as e:
            # aiohttp raises these when the peer went away mid-send
            logger.warning("Dropped outbound event", event_type=payload.get("type"), error=str(e))
            return False
        return True
