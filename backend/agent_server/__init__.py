"""
Claude Agent Relay Server

Bridges one realtime WebSocket client to a single long-lived
claude-agent-sdk session, and runs file commands against a sandboxed
workspace directory.
"""

__version__ = "0.1.0"

from .config import ServerConfig
from .context import SessionContext
from .runtime.types import (
    InboundType,
    OutboundType,
    FileEncoding,
    QueryConfig,
)
from .runtime.stream_bridge import BridgeState

__all__ = [
    "ServerConfig",
    "SessionContext",
    "InboundType",
    "OutboundType",
    "FileEncoding",
    "QueryConfig",
    "BridgeState",
    "__version__",
]
