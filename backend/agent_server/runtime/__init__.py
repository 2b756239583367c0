"""
Agent Server Runtime

Relay engine between one realtime client and one agent session.
"""

from .errors import (
    AgentServerError,
    ConnectionRejected,
    MalformedMessage,
    SessionFailure,
    FileOperationFailure,
    ConfigInvalid,
)
from .types import (
    InboundType,
    OutboundType,
    FileEncoding,
    QueryConfig,
    parse_inbound,
)
from .config_store import ConfigStore
from .input_queue import InputQueue
from .query_engine import (
    QueryEngine,
    QuerySession,
    QueryOptions,
    ClaudeQueryEngine,
    build_query_options,
    serialize_event,
)
from .stream_bridge import StreamBridge, BridgeState
from .connection_gate import ConnectionGate

__all__ = [
    # Errors
    "AgentServerError",
    "ConnectionRejected",
    "MalformedMessage",
    "SessionFailure",
    "FileOperationFailure",
    "ConfigInvalid",
    # Types
    "InboundType",
    "OutboundType",
    "FileEncoding",
    "QueryConfig",
    "parse_inbound",
    # Components
    "ConfigStore",
    "InputQueue",
    "QueryEngine",
    "QuerySession",
    "QueryOptions",
    "ClaudeQueryEngine",
    "build_query_options",
    "serialize_event",
    "StreamBridge",
    "BridgeState",
    "ConnectionGate",
]
