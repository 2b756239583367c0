"""
Query Engine - the duplex agent session behind the relay.

The relay only needs three things from the agent: open a session over a
lazy stream of input turns, iterate its output events, and interrupt the
turn in flight. ``QueryEngine`` / ``QuerySession`` capture that contract;
``ClaudeQueryEngine`` implements it with claude-agent-sdk's
``ClaudeSDKClient`` in streaming-input mode.
"""

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from claude_agent_sdk import AgentDefinition, ClaudeAgentOptions, ClaudeSDKClient

from .types import QueryConfig
from ...utils.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# Options
# =============================================================================


@dataclass
class QueryOptions:
    """Engine-neutral session options (fixed defaults + QueryConfig overlay)."""

    cwd: str
    permission_mode: str = "bypassPermissions"
    setting_sources: List[str] = field(default_factory=lambda: ["local"])
    allowed_tools: Optional[List[str]] = None
    system_prompt: Optional[Union[str, Dict[str, Any]]] = None
    model: Optional[str] = None
    agents: Optional[Dict[str, Dict[str, Any]]] = None
    mcp_servers: Optional[Dict[str, Dict[str, Any]]] = None
    env: Dict[str, str] = field(default_factory=dict)


def build_query_options(config: QueryConfig, workspace_dir: str) -> QueryOptions:
    """Overlay the posted configuration onto the fixed session defaults."""
    options = QueryOptions(cwd=workspace_dir)

    if config.allowed_tools is not None:
        options.allowed_tools = list(config.allowed_tools)
    if config.system_prompt is not None:
        options.system_prompt = config.system_prompt
    if config.model is not None:
        options.model = config.model
    if config.agents is not None:
        options.agents = dict(config.agents)
    if config.mcp_servers is not None:
        options.mcp_servers = dict(config.mcp_servers)
    if config.anthropic_api_key:
        options.env["ANTHROPIC_API_KEY"] = config.anthropic_api_key

    if config.extra:
        logger.warning("Ignoring unrecognised config keys", keys=sorted(config.extra))

    return options


# =============================================================================
# Interfaces
# =============================================================================


class QuerySession(ABC):
    """
    One open agent session.

    Iterating it yields output events until the session ends or raises.
    """

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[Any]:
        pass

    @abstractmethod
    async def interrupt(self) -> None:
        """Cancel the turn in flight; the session stays open."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the session's resources."""
        pass


class QueryEngine(ABC):
    """Factory for agent sessions."""

    @abstractmethod
    async def open(self, turns: AsyncIterator[Dict[str, Any]], options: QueryOptions) -> QuerySession:
        """
        Open a session that consumes ``turns`` lazily.

        Args:
            turns: Endless stream of user turns
            options: Session options

        Returns:
            The open session
        """
        pass


# =============================================================================
# Event Serialization
# =============================================================================

# claude-agent-sdk messages and content blocks are dataclasses without a
# discriminator field; the wire format tags them the way the CLI does.
SDK_TYPE_TAGS = {
    "UserMessage": "user",
    "AssistantMessage": "assistant",
    "SystemMessage": "system",
    "ResultMessage": "result",
    "StreamEvent": "stream_event",
    "TextBlock": "text",
    "ThinkingBlock": "thinking",
    "ToolUseBlock": "tool_use",
    "ToolResultBlock": "tool_result",
}


def serialize_event(value: Any) -> Any:
    """Convert an output event into JSON-compatible data."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        result = {}
        tag = SDK_TYPE_TAGS.get(type(value).__name__)
        if tag:
            result["type"] = tag
        for f in dataclasses.fields(value):
            result[f.name] = serialize_event(getattr(value, f.name))
        return result
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(key): serialize_event(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_event(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


# =============================================================================
# Claude Agent SDK Implementation
# =============================================================================


class ClaudeQuerySession(QuerySession):
    """ClaudeSDKClient connected in streaming-input mode."""

    def __init__(self, client: ClaudeSDKClient):
        self._client = client

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._client.receive_messages().__aiter__()

    async def interrupt(self) -> None:
        await self._client.interrupt()

    async def close(self) -> None:
        await self._client.disconnect()


class ClaudeQueryEngine(QueryEngine):
    """Opens sessions through claude-agent-sdk."""

    async def open(self, turns: AsyncIterator[Dict[str, Any]], options: QueryOptions) -> QuerySession:
        sdk_options = self.to_sdk_options(options)
        client = ClaudeSDKClient(options=sdk_options)

        logger.info(
            "Connecting Claude agent session",
            cwd=options.cwd,
            model=options.model or "default",
            agents=sorted(options.agents or {}),
            mcp_servers=sorted(options.mcp_servers or {}),
        )
        await client.connect(prompt=turns)
        return ClaudeQuerySession(client)

    @staticmethod
    def to_sdk_options(options: QueryOptions) -> ClaudeAgentOptions:
        kwargs: Dict[str, Any] = {
            "cwd": options.cwd,
            "permission_mode": options.permission_mode,
            "setting_sources": list(options.setting_sources),
        }
        if options.allowed_tools is not None:
            kwargs["allowed_tools"] = list(options.allowed_tools)
        if options.system_prompt is not None:
            kwargs["system_prompt"] = options.system_prompt
        if options.model:
            kwargs["model"] = options.model
        if options.mcp_servers:
            kwargs["mcp_servers"] = options.mcp_servers
        if options.env:
            kwargs["env"] = dict(options.env)
        if options.agents:
            kwargs["agents"] = {
                name: AgentDefinition(
                    description=spec.get("description", ""),
                    prompt=spec.get("prompt", ""),
                    tools=spec.get("tools"),
                    model=spec.get("model"),
                )
                for name, spec in options.agents.items()
            }
        return ClaudeAgentOptions(**kwargs)
