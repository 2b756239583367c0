"""
Integration test for AgentClient against a locally served relay
(``connection_url`` mode, no sandbox).
"""

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from backend.agent_server.api import CONTEXT_KEY, create_app
from backend.agent_server.client import AgentClient, ClientOptions
from backend.agent_server.client.agent_client import _endpoints
from backend.agent_server.config import ServerConfig


@pytest_asyncio.fixture
async def server(workspace, fake_engine):
    app = create_app(ServerConfig(workspace_dir=str(workspace)), engine=fake_engine)
    test_server = TestServer(app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest.mark.parametrize(
    "base_url, expected",
    [
        ("http://localhost:3000", ("http://localhost:3000/config", "ws://localhost:3000/ws")),
        ("https://3000-abc.e2b.app/", ("https://3000-abc.e2b.app/config", "wss://3000-abc.e2b.app/ws")),
        ("http://host/relay", ("http://host/relay/config", "ws://host/relay/ws")),
    ],
)
def test_endpoints(base_url, expected):
    assert _endpoints(base_url) == expected


@pytest.mark.asyncio
async def test_start_requires_keys_without_connection_url(monkeypatch):
    monkeypatch.delenv("E2B_API_KEY", raising=False)
    client = AgentClient(ClientOptions())
    with pytest.raises(ValueError):
        await client.start()


@pytest.mark.asyncio
async def test_send_before_start_fails():
    client = AgentClient(ClientOptions(connection_url="http://localhost:3000"))
    with pytest.raises(RuntimeError):
        await client.send({"type": "interrupt"})


@pytest.mark.asyncio
async def test_client_posts_config_and_relays_messages(server, fake_engine, waiter, monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    client = AgentClient(
        ClientOptions(
            connection_url=str(server.make_url("/")),
            model="claude-sonnet-4-5",
            allowed_tools=["Read"],
        )
    )
    received = []
    unsubscribe = client.on_message(received.append)

    await client.start()
    try:
        stored = server.app[CONTEXT_KEY].config_store.get().to_dict()
        assert stored == {"model": "claude-sonnet-4-5", "allowedTools": ["Read"]}

        await waiter(lambda: {"type": "connected"} in received)

        await client.send(
            {
                "type": "user_message",
                "data": {"type": "user", "message": {"role": "user", "content": "hi"}},
            }
        )
        await waiter(lambda: any(m["type"] == "sdk_message" for m in received))
        assert fake_engine.session.options.model == "claude-sonnet-4-5"

        unsubscribe()
        count = len(received)
        later = []
        client.on_message(later.append)
        await client.send({"type": "list_files"})
        await waiter(lambda: any(m["type"] == "file_result" for m in later))
        assert len(received) == count
    finally:
        await client.stop()

    assert not client.connected


@pytest.mark.asyncio
async def test_failed_websocket_connect_releases_resources():
    async def accept_config(request):
        return web.json_response({"success": True, "config": await request.json()})

    app = web.Application()
    app.add_routes([web.post("/config", accept_config)])
    config_only = TestServer(app)
    await config_only.start_server()

    client = AgentClient(ClientOptions(connection_url=str(config_only.make_url("/"))))
    killed = []

    async def kill():
        killed.append(True)

    client._sandbox.kill = kill
    try:
        with pytest.raises(aiohttp.ClientError):
            await client.start()
    finally:
        await config_only.close()

    assert client._session is None
    assert killed == [True]
    assert not client.connected
