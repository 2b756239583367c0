"""
Agent Server API

aiohttp application exposing the relay:

    POST /config   replace the agent query configuration
    GET  /config   current configuration
    GET  /health   liveness and session state
    GET  /ws       the single realtime connection
"""

import aiohttp
from aiohttp import web
from typing import Optional

from ..config import ServerConfig
from ..context import SessionContext
from ..runtime.errors import ConfigInvalid
from ..runtime.query_engine import QueryEngine
from .message_handler import handle_message
from ...utils.logger import get_logger

logger = get_logger(__name__)

CONTEXT_KEY = web.AppKey("context", SessionContext)


# =============================================================================
# Config Handlers
# =============================================================================


async def set_config_handler(request: web.Request) -> web.Response:
    """
    POST /config
    Replace the stored query configuration.
    """
    context = request.app[CONTEXT_KEY]

    try:
        data = await request.json()
        config = context.config_store.set(data)
    except (ValueError, ConfigInvalid):
        # json.JSONDecodeError is a ValueError
        logger.warning("Rejected /config body")
        return web.json_response({"error": "Invalid JSON"}, status=400)

    return web.json_response({"success": True, "config": config.to_dict()})


async def get_config_handler(request: web.Request) -> web.Response:
    """
    GET /config
    Return the stored query configuration.
    """
    context = request.app[CONTEXT_KEY]
    return web.json_response({"config": context.config_store.get().to_dict()})


async def health_handler(request: web.Request) -> web.Response:
    """GET /health - Health check."""
    context = request.app[CONTEXT_KEY]
    return web.json_response({"status": "ok", **context.status()})


# =============================================================================
# Realtime Handler
# =============================================================================


async def websocket_handler(request: web.Request) -> web.WebSocketResponse:
    """
    WebSocket /ws
    The one live client connection. Extra connections are rejected.
    """
    context = request.app[CONTEXT_KEY]
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    if not await context.gate.accept(ws):
        return ws

    logger.info("WebSocket connected", remote=request.remote)

    try:
        async for msg in ws:
            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                await handle_message(context, ws, msg.data)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.error("WebSocket error", error=str(ws.exception()))
                break
    finally:
        context.gate.release(ws)
        logger.info("WebSocket closed", remote=request.remote)

    return ws


# =============================================================================
# Application
# =============================================================================


def create_routes() -> list:
    """Route definitions for the relay."""
    return [
        web.post("/config", set_config_handler),
        web.get("/config", get_config_handler),
        web.get("/health", health_handler),
        web.get("/ws", websocket_handler),
    ]


async def on_cleanup(app: web.Application) -> None:
    """Cleanup on shutdown."""
    await app[CONTEXT_KEY].shutdown()
    logger.info("Agent server stopped")


def create_app(config: ServerConfig, engine: Optional[QueryEngine] = None) -> web.Application:
    """
    Create the aiohttp application.

    Args:
        config: ServerConfig instance
        engine: Query engine override (defaults to claude-agent-sdk)

    Returns:
        Configured aiohttp application
    """
    app = web.Application()
    app[CONTEXT_KEY] = SessionContext(config.workspace_dir, engine=engine)

    app.add_routes(create_routes())
    app.on_cleanup.append(on_cleanup)

    logger.info("Agent server created", workspace=app[CONTEXT_KEY].workspace_dir)
    return app
