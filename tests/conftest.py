"""
Pytest fixtures for client tests.

This module provides:
- A scripted in-memory stream standing in for JsonRpcStream
- A fast client configuration (no heartbeat, no backoff)
- Mock aiohttp socket and session objects
- A polling helper for background-task scenarios
"""

import asyncio
import copy
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from deribit_ws.api.errors import DeribitConnectionError
from deribit_ws.lib.config import DeribitConfig


AUTH_RESULT = {
    "access_token": "access-1",
    "refresh_token": "refresh-1",
    "expires_in": 900,
    "scope": "connection mainaccount",
    "token_type": "bearer",
}


def default_reply(envelope: dict) -> Optional[dict]:
    """Answer the methods the client issues on its own."""
    method = envelope["method"]
    params = envelope.get("params") or {}

    if method == "public/auth":
        return {"result": dict(AUTH_RESULT)}
    if method in ("public/subscribe", "private/subscribe"):
        return {"result": list(params.get("channels", []))}
    if method == "public/test":
        return {"result": {"version": "1.2.26"}}
    if method == "public/get_time":
        return {"result": 1700000000000}
    return {"result": "ok"}


class FakeStream:
    """In-memory JsonRpcStream.

    Every request with an id is answered on the next loop iteration. Replies
    can be scripted per method through `responses`: a dict reply, a callable
    taking the request envelope, or None for no reply at all.
    """

    def __init__(self, responses: Optional[dict[str, Any]] = None):
        self.responses: dict[str, Any] = dict(responses or {})
        self.sent: list[dict] = []
        self.handler: Optional[Callable] = None
        self.close_calls = 0
        self._disconnected = asyncio.Event()
        self._tasks: set[asyncio.Task] = set()

    @property
    def closed(self) -> bool:
        return self._disconnected.is_set()

    def start(self, handler: Callable) -> None:
        self.handler = handler

    async def send(self, envelope: dict) -> None:
        if self.closed:
            raise DeribitConnectionError("WebSocket not connected")

        self.sent.append(copy.deepcopy(envelope))
        if "id" not in envelope:
            return

        reply = self._reply(envelope)
        if reply is None:
            return

        reply = dict(reply)
        reply.setdefault("jsonrpc", "2.0")
        reply["id"] = envelope["id"]
        asyncio.get_running_loop().call_soon(self._schedule, reply)

    def _schedule(self, reply: dict) -> None:
        task = asyncio.ensure_future(self.handler(reply))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _reply(self, envelope: dict) -> Optional[dict]:
        method = envelope["method"]
        if method in self.responses:
            reply = self.responses[method]
            return reply(envelope) if callable(reply) else reply
        return default_reply(envelope)

    def methods(self) -> list[str]:
        return [e["method"] for e in self.sent]

    def sent_for(self, method: str) -> list[dict]:
        return [e for e in self.sent if e["method"] == method]

    async def wait_disconnected(self) -> None:
        await self._disconnected.wait()

    def simulate_disconnect(self) -> None:
        self._disconnected.set()

    async def close(self) -> None:
        self.close_calls += 1
        self._disconnected.set()

    async def deliver(self, envelope: dict) -> None:
        """Push a server envelope through the bound handler."""
        await self.handler(envelope)


@pytest.fixture
def make_stream():
    """Factory for FakeStream instances."""
    def factory(**kwargs) -> FakeStream:
        return FakeStream(**kwargs)
    return factory


@pytest.fixture
def fast_config():
    """Client config with every delay removed and no background probes."""
    return DeribitConfig(
        url="wss://test.deribit.com/ws/api/v2/",
        auto_reconnect=False,
        heartbeat_interval=0,
        server_heartbeat_interval=None,
        reconnect_delay=0,
        dial_backoff=0,
        max_dial_attempts=3,
        call_timeout=0.5,
    )


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds or the timeout expires."""
    async def waiter(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                return False
            await asyncio.sleep(0.01)
        return True
    return waiter


@pytest.fixture
def mock_ws_response():
    """Create a mock aiohttp WebSocket response."""
    ws = AsyncMock()
    ws.closed = False
    ws.close = AsyncMock()
    ws.send_str = AsyncMock()
    return ws


@pytest.fixture
def mock_session(mock_ws_response):
    """Create a mock aiohttp session."""
    session = MagicMock()
    session.ws_connect = AsyncMock(return_value=mock_ws_response)
    session.close = AsyncMock()
    session.closed = False
    return session
