"""
Agent Server Type Definitions

Wire schemas for the realtime channel (inbound commands, outbound events)
and the query configuration accepted by ``POST /config``.
"""

import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .errors import ConfigInvalid, MalformedMessage


# ============================================
# Enums
# ============================================


class InboundType(str, Enum):
    """Client -> server frame kinds"""

    USER_MESSAGE = "user_message"
    INTERRUPT = "interrupt"
    CREATE_FILE = "create_file"
    READ_FILE = "read_file"
    DELETE_FILE = "delete_file"
    LIST_FILES = "list_files"


class OutboundType(str, Enum):
    """Server -> client frame kinds"""

    CONNECTED = "connected"
    SDK_MESSAGE = "sdk_message"
    ERROR = "error"
    FILE_RESULT = "file_result"


class FileEncoding(str, Enum):
    """Content encoding for create_file / read_file"""

    UTF8 = "utf-8"
    BASE64 = "base64"


# ============================================
# Inbound Commands
# ============================================


@dataclass(frozen=True)
class UserMessageCommand:
    """One conversation turn for the agent session"""

    data: Dict[str, Any]
    type: InboundType = InboundType.USER_MESSAGE


@dataclass(frozen=True)
class InterruptCommand:
    """Cancel the in-flight turn"""

    type: InboundType = InboundType.INTERRUPT


@dataclass(frozen=True)
class CreateFileCommand:
    path: str
    content: str
    encoding: FileEncoding = FileEncoding.UTF8
    type: InboundType = InboundType.CREATE_FILE


@dataclass(frozen=True)
class ReadFileCommand:
    path: str
    encoding: FileEncoding = FileEncoding.UTF8
    type: InboundType = InboundType.READ_FILE


@dataclass(frozen=True)
class DeleteFileCommand:
    path: str
    type: InboundType = InboundType.DELETE_FILE


@dataclass(frozen=True)
class ListFilesCommand:
    path: Optional[str] = None
    type: InboundType = InboundType.LIST_FILES


FileCommand = Union[CreateFileCommand, ReadFileCommand, DeleteFileCommand, ListFilesCommand]
InboundMessage = Union[UserMessageCommand, InterruptCommand, FileCommand]


def _require_str(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise MalformedMessage(f"'{key}' must be a string")
    return value


def _parse_encoding(payload: Dict[str, Any]) -> FileEncoding:
    raw = payload.get("encoding") or FileEncoding.UTF8.value
    try:
        return FileEncoding(raw)
    except ValueError:
        raise MalformedMessage(f"Unsupported encoding: {raw!r}") from None


def parse_inbound(raw: Union[str, bytes]) -> InboundMessage:
    """
    Parse one realtime frame into a command.

    Raises:
        MalformedMessage: invalid JSON, non-object frame, unknown type or
            missing/invalid fields
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMessage(str(e)) from e

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedMessage(str(e)) from e

    if not isinstance(payload, dict):
        raise MalformedMessage("Message must be a JSON object")

    try:
        kind = InboundType(payload.get("type"))
    except ValueError:
        raise MalformedMessage(f"Unknown message type: {payload.get('type')!r}") from None

    if kind is InboundType.USER_MESSAGE:
        data = payload.get("data")
        if not isinstance(data, dict):
            raise MalformedMessage("'data' must be an object")
        return UserMessageCommand(data=data)

    if kind is InboundType.INTERRUPT:
        return InterruptCommand()

    if kind is InboundType.CREATE_FILE:
        return CreateFileCommand(
            path=_require_str(payload, "path"),
            content=_require_str(payload, "content"),
            encoding=_parse_encoding(payload),
        )

    if kind is InboundType.READ_FILE:
        return ReadFileCommand(
            path=_require_str(payload, "path"),
            encoding=_parse_encoding(payload),
        )

    if kind is InboundType.DELETE_FILE:
        return DeleteFileCommand(path=_require_str(payload, "path"))

    if kind is InboundType.LIST_FILES:
        path = payload.get("path")
        if path is not None and not isinstance(path, str):
            raise MalformedMessage("'path' must be a string")
        return ListFilesCommand(path=path)

    raise MalformedMessage(f"Unhandled message type: {kind.value}")


# ============================================
# Outbound Events
# ============================================


def connected_event() -> Dict[str, Any]:
    return {"type": OutboundType.CONNECTED.value}


def sdk_message_event(data: Any) -> Dict[str, Any]:
    return {"type": OutboundType.SDK_MESSAGE.value, "data": data}


def error_event(message: str) -> Dict[str, Any]:
    return {"type": OutboundType.ERROR.value, "error": message}


def file_result_event(
    operation: InboundType,
    result: Union[str, List[str]],
    encoding: Optional[FileEncoding] = None,
) -> Dict[str, Any]:
    event = {
        "type": OutboundType.FILE_RESULT.value,
        "operation": operation.value,
        "result": result,
    }
    if encoding is not None:
        event["encoding"] = encoding.value
    return event


# ============================================
# Query Configuration
# ============================================


@dataclass
class QueryConfig:
    """
    Options for the agent session, as posted to /config.

    Wire keys are camelCase. Keys this server does not recognise are kept
    in ``extra`` so GET /config echoes back exactly what was stored.
    """

    agents: Optional[Dict[str, Dict[str, Any]]] = None
    allowed_tools: Optional[List[str]] = None
    system_prompt: Optional[Union[str, Dict[str, Any]]] = None
    model: Optional[str] = None
    mcp_servers: Optional[Dict[str, Dict[str, Any]]] = None
    anthropic_api_key: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    WIRE_KEYS = {
        "agents": "agents",
        "allowedTools": "allowed_tools",
        "systemPrompt": "system_prompt",
        "model": "model",
        "mcpServers": "mcp_servers",
        "anthropicApiKey": "anthropic_api_key",
    }

    @classmethod
    def from_dict(cls, data: Any) -> "QueryConfig":
        if not isinstance(data, dict):
            raise ConfigInvalid()

        known = {}
        extra = {}
        for key, value in data.items():
            if key in cls.WIRE_KEYS:
                known[cls.WIRE_KEYS[key]] = copy.deepcopy(value)
            else:
                extra[key] = copy.deepcopy(value)
        return cls(extra=extra, **known)

    def to_dict(self) -> Dict[str, Any]:
        result = copy.deepcopy(self.extra)
        for wire_key, attr in self.WIRE_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                result[wire_key] = copy.deepcopy(value)
        return result
