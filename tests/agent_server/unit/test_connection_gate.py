"""
Unit tests for ConnectionGate
"""

import pytest

from backend.agent_server.runtime.connection_gate import ConnectionGate


@pytest.mark.asyncio
async def test_first_connection_is_acknowledged(make_connection):
    admitted = []

    async def on_admit():
        admitted.append(True)

    gate = ConnectionGate(on_admit=on_admit)
    ws = make_connection()

    assert await gate.accept(ws) is True
    assert gate.active is ws
    assert ws.sent == [{"type": "connected"}]
    assert admitted == [True]


@pytest.mark.asyncio
async def test_second_connection_is_rejected_and_closed(make_connection):
    gate = ConnectionGate()
    first = make_connection()
    second = make_connection()
    await gate.accept(first)

    assert await gate.accept(second) is False

    assert second.sent == [{"type": "error", "error": "Server already has an active connection"}]
    assert second.closed
    assert gate.active is first
    assert not first.closed
    assert first.sent == [{"type": "connected"}]


@pytest.mark.asyncio
async def test_rejection_does_not_trigger_admission_hook(make_connection):
    calls = []

    async def on_admit():
        calls.append(1)

    gate = ConnectionGate(on_admit=on_admit)
    await gate.accept(make_connection())
    await gate.accept(make_connection())

    assert calls == [1]


@pytest.mark.asyncio
async def test_stale_release_is_ignored(make_connection):
    gate = ConnectionGate()
    old = make_connection()
    new = make_connection()

    await gate.accept(old)
    assert gate.release(old) is True
    await gate.accept(new)

    # Late close notification for the old connection
    assert gate.release(old) is False
    assert gate.active is new


@pytest.mark.asyncio
async def test_reconnect_after_release(make_connection):
    gate = ConnectionGate()
    first = make_connection()
    await gate.accept(first)
    gate.release(first)

    second = make_connection()
    assert await gate.accept(second) is True
    assert gate.active is second


@pytest.mark.asyncio
async def test_send_without_connection_drops(make_connection):
    gate = ConnectionGate()
    assert await gate.send({"type": "sdk_message", "data": {}}) is False

    ws = make_connection()
    await gate.accept(ws)
    assert await gate.send({"type": "sdk_message", "data": {"n": 1}}) is True
    assert ws.sent[-1] == {"type": "sdk_message", "data": {"n": 1}}

    ws.closed = True
    assert await gate.send({"type": "sdk_message", "data": {"n": 2}}) is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
