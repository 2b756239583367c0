"""
Shared fixtures: an in-memory query engine and transport handle.
"""

import asyncio
from typing import Any, Dict, List

import pytest

from backend.agent_server.runtime.query_engine import QueryEngine, QueryOptions, QuerySession


class FakeQuerySession(QuerySession):
    """Consumes turns like the real SDK and echoes each one as an event."""

    def __init__(self, turns, options: QueryOptions, echo: bool = True):
        self.options = options
        self.received: List[Dict[str, Any]] = []
        self.interrupts = 0
        self.closed = False
        self.opened_in = asyncio.current_task()
        self.closed_in = None
        self._echo = echo
        self._outputs: asyncio.Queue = asyncio.Queue()
        self._consumer = asyncio.create_task(self._consume(turns))

    async def _consume(self, turns) -> None:
        async for turn in turns:
            self.received.append(turn)
            if self._echo:
                self._outputs.put_nowait({"type": "assistant", "echo": turn})

    def emit(self, event: Any) -> None:
        self._outputs.put_nowait(event)

    def fail(self, error: Exception) -> None:
        self._outputs.put_nowait(error)

    def __aiter__(self):
        return self._events()

    async def _events(self):
        while True:
            item = await self._outputs.get()
            if isinstance(item, Exception):
                raise item
            yield item

    async def interrupt(self) -> None:
        self.interrupts += 1

    async def close(self) -> None:
        self.closed = True
        self.closed_in = asyncio.current_task()
        self._consumer.cancel()


class FakeQueryEngine(QueryEngine):
    def __init__(self, echo: bool = True, open_error: Exception = None):
        self.sessions: List[FakeQuerySession] = []
        self._echo = echo
        self._open_error = open_error

    async def open(self, turns, options: QueryOptions) -> FakeQuerySession:
        if self._open_error is not None:
            raise self._open_error
        session = FakeQuerySession(turns, options, echo=self._echo)
        self.sessions.append(session)
        return session

    @property
    def session(self) -> FakeQuerySession:
        assert len(self.sessions) == 1, f"expected one session, got {len(self.sessions)}"
        return self.sessions[0]


class FakeConnection:
    """Stands in for aiohttp.web.WebSocketResponse."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.closed = False

    async def send_json(self, data: Any) -> None:
        if self.closed:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent.append(data)

    async def close(self) -> bool:
        self.closed = True
        return True

    def of_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [m for m in self.sent if m.get("type") == event_type]


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> None:
    """Yield to the event loop until ``predicate()`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


@pytest.fixture
def fake_engine():
    return FakeQueryEngine()


@pytest.fixture
def make_connection():
    return FakeConnection


@pytest.fixture
def waiter():
    return wait_until


@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / "agent-workspace"
    path.mkdir()
    return path


@pytest.fixture
def make_engine():
    return FakeQueryEngine
