"""
Agent Client

Python client for the relay server. Either provisions an E2B sandbox
running the server, or talks to an existing server via ``connection_url``.

Example:
    client = AgentClient(ClientOptions(model="claude-sonnet-4-5"))
    await client.start()
    client.on_message(lambda msg: print(msg))
    await client.send({"type": "user_message", "data": {...}})
    ...
    await client.stop()
"""

import asyncio
import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import urlparse, urlunparse

import aiohttp

from .sandbox import SandboxProvider
from ..config import SANDBOX_TEMPLATE, SERVER_PORT
from ..runtime.types import QueryConfig
from ...utils.logger import get_logger

logger = get_logger(__name__)

MessageHandler = Callable[[Dict[str, Any]], None]


@dataclass
class ClientOptions:
    """Client settings plus the query configuration posted to /config."""

    # Query configuration
    agents: Optional[Dict[str, Dict[str, Any]]] = None
    allowed_tools: Optional[List[str]] = None
    system_prompt: Optional[Union[str, Dict[str, Any]]] = None
    model: Optional[str] = None
    mcp_servers: Optional[Dict[str, Dict[str, Any]]] = None
    anthropic_api_key: Optional[str] = None

    # Client
    e2b_api_key: Optional[str] = None
    template: str = SANDBOX_TEMPLATE
    timeout_ms: int = 5 * 60 * 1000
    connection_url: Optional[str] = None
    debug: bool = False
    extra_config: Dict[str, Any] = field(default_factory=dict)

    def query_config(self) -> QueryConfig:
        return QueryConfig(
            agents=self.agents,
            allowed_tools=self.allowed_tools,
            system_prompt=self.system_prompt,
            model=self.model,
            mcp_servers=self.mcp_servers,
            anthropic_api_key=self.anthropic_api_key,
            extra=dict(self.extra_config),
        )


def _endpoints(base_url: str) -> tuple:
    """(config_url, ws_url) for a server base URL."""
    parsed = urlparse(base_url)
    secure = parsed.scheme in ("https", "wss")
    http_scheme = "https" if secure else "http"
    ws_scheme = "wss" if secure else "ws"
    path = parsed.path.rstrip("/")
    config_url = urlunparse((http_scheme, parsed.netloc, f"{path}/config", "", "", ""))
    ws_url = urlunparse((ws_scheme, parsed.netloc, f"{path}/ws", "", "", ""))
    return config_url, ws_url


class AgentClient:
    """Client for one relay server."""

    def __init__(self, options: Optional[ClientOptions] = None):
        self.options = options or ClientOptions()
        self._sandbox = SandboxProvider()
        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader: Optional[asyncio.Task] = None
        self._handlers: List[MessageHandler] = []
        self._log = logger.bind(client="agent")

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def start(self) -> None:
        """
        Provision (or locate) the server, post the configuration and open
        the WebSocket.

        Raises:
            ValueError: if a required API key is missing
            RuntimeError: if the server rejected the configuration
        """
        anthropic_api_key = self.options.anthropic_api_key or os.getenv("ANTHROPIC_API_KEY")

        if self.options.connection_url:
            config_url, ws_url = _endpoints(self.options.connection_url)
        else:
            e2b_api_key = self.options.e2b_api_key or os.getenv("E2B_API_KEY")
            if not e2b_api_key:
                raise ValueError("E2B_API_KEY is required")
            if not anthropic_api_key:
                raise ValueError("ANTHROPIC_API_KEY is required")

            await self._sandbox.create(self.options.template, e2b_api_key, self.options.timeout_ms)
            config_url, ws_url = _endpoints(f"https://{self._sandbox.host(SERVER_PORT)}")

        config = self.options.query_config()
        if anthropic_api_key:
            config.anthropic_api_key = anthropic_api_key

        self._session = aiohttp.ClientSession()

        if self.options.debug:
            self._log.info("Configuring server", url=config_url)

        async with self._session.post(config_url, json=config.to_dict()) as response:
            if response.status != 200:
                error = await response.text()
                await self._session.close()
                self._session = None
                await self._sandbox.kill()
                raise RuntimeError(f"Failed to configure server: {error}")

        if self.options.debug:
            self._log.info("Connecting to WebSocket", url=ws_url)

        try:
            self._ws = await self._session.ws_connect(ws_url)
        except (aiohttp.ClientError, asyncio.TimeoutError):
            self._log.exception("WebSocket connection failed", url=ws_url)
            await self._session.close()
            self._session = None
            await self._sandbox.kill()
            raise

        self._reader = asyncio.create_task(self._read_loop(), name="agent-client-reader")

        if self.options.debug:
            self._log.info("Connected to agent server")

    async def _read_loop(self) -> None:
        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    message = json.loads(msg.data)
                except json.JSONDecodeError:
                    self._log.exception("Failed to parse message")
                    continue
                self._handle_message(message)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                self._log.error("WebSocket error", error=str(self._ws.exception()))
                break

        if self.options.debug:
            self._log.info("Disconnected")

    def _handle_message(self, message: Dict[str, Any]) -> None:
        if self.options.debug:
            self._log.debug("Received message", message_type=message.get("type"))
        for handler in list(self._handlers):
            try:
                handler(message)
            except Exception:
                self._log.exception("Message handler raised")

    def on_message(self, handler: MessageHandler) -> Callable[[], None]:
        """
        Register a handler for every server message.

        Returns:
            A function that unregisters the handler
        """
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    async def send(self, message: Dict[str, Any]) -> None:
        """Send one client frame (user_message, interrupt or a file command)."""
        if not self.connected:
            raise RuntimeError("WebSocket is not connected")
        await self._ws.send_json(message)

    # ------------------------------------------------------------------
    # Sandbox filesystem
    # ------------------------------------------------------------------

    async def write_file(self, path: str, content: Union[str, bytes]) -> Any:
        return await self._sandbox.write_file(path, content)

    async def read_file(self, path: str, format: str = "text") -> Union[str, bytearray]:
        return await self._sandbox.read_file(path, format)

    async def remove_file(self, path: str) -> None:
        await self._sandbox.remove_file(path)

    async def list_files(self, path: str = ".") -> list:
        return await self._sandbox.list_files(path)

    async def watch_dir(self, path: str, on_event, recursive: bool = False, on_exit=None) -> Any:
        return await self._sandbox.watch_dir(path, on_event, recursive=recursive, on_exit=on_exit)

    async def stop(self) -> None:
        """Close the WebSocket and kill the sandbox."""
        if self._ws is not None:
            await self._ws.close()
        if self._reader is not None:
            try:
                await self._reader
            except Exception:
                self._log.exception("Reader task failed")
            self._reader = None
        if self._session is not None:
            await self._session.close()
            self._session = None
        await self._sandbox.kill()
