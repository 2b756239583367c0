"""
Realtime message handler.

Turns one inbound WebSocket frame into an action:

    user_message  -> InputQueue.enqueue
    interrupt     -> StreamBridge.interrupt
    *_file(s)     -> FileCommandDispatcher, reply with file_result

Any failure is answered with exactly one ``error`` event on the same
connection; the session and the queue are never affected.
"""

from typing import Any, Union

from ..context import SessionContext
from ..runtime.errors import FileOperationFailure, MalformedMessage, SessionFailure
from ..runtime.types import (
    CreateFileCommand,
    DeleteFileCommand,
    InterruptCommand,
    ListFilesCommand,
    ReadFileCommand,
    UserMessageCommand,
    error_event,
    parse_inbound,
)
from ..runtime.connection_gate import Connection
from ...utils.logger import get_logger

logger = get_logger(__name__)


async def handle_message(context: SessionContext, ws: Connection, raw: Union[str, bytes]) -> None:
    """Handle one frame received on ``ws``."""
    try:
        command = parse_inbound(raw)
    except MalformedMessage as e:
        logger.warning("Invalid message format", error=str(e))
        await _reply(ws, error_event(f"Invalid message format: {e}"))
        return

    if isinstance(command, UserMessageCommand):
        context.input_queue.enqueue(command.data)

    elif isinstance(command, InterruptCommand):
        try:
            await context.bridge.interrupt()
        except SessionFailure as e:
            await _reply(ws, error_event(str(e)))

    elif isinstance(command, (CreateFileCommand, ReadFileCommand, DeleteFileCommand, ListFilesCommand)):
        try:
            result = context.dispatcher.dispatch(command)
        except FileOperationFailure as e:
            logger.warning("File command failed", operation=e.operation, error=e.reason)
            await _reply(ws, error_event(str(e)))
        else:
            await _reply(ws, result)

    else:
        # parse_inbound only returns the variants above
        raise AssertionError(f"Unhandled command: {command!r}")


async def _reply(ws: Connection, payload: Any) -> None:
    if ws.closed:
        return
    try:
        await ws.send_json(payload)
    except (ConnectionError, RuntimeError) as e:
        logger.warning("Failed to send reply", error=str(e))
