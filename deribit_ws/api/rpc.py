"""
JSON-RPC request/response correlation.

RpcCorrelator is bound to one JsonRpcStream for the lifetime of a connection.
It assigns call ids, keeps the table of in-flight calls, applies the per-call
deadline and resolves each call when the response with its id arrives.
Request-shaped envelopes (server pushes) are handed to the request handler.
"""

import asyncio
import itertools
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from deribit_ws.api.errors import (
    DeribitConnectionError,
    DeribitProtocolError,
    DeribitRPCError,
    DeribitTimeoutError,
)
from deribit_ws.lib.constants import JSONRPC_VERSION
from deribit_ws.lib.logging_utils import log_latency

logger = logging.getLogger(__name__)

RequestHandler = Callable[[dict], Awaitable[None]]


def make_request(method: str, params: Any, call_id: Optional[int] = None) -> dict:
    """Build a request envelope; without call_id it is a notification."""
    envelope: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION}
    if call_id is not None:
        envelope["id"] = call_id
    envelope["method"] = method
    envelope["params"] = params
    return envelope


def is_request(envelope: dict) -> bool:
    """Server-pushed requests carry a method; responses do not."""
    return "method" in envelope


class RpcCorrelator:
    """Matches responses to calls by id on a single stream.

    Example:
        correlator = RpcCorrelator(stream, handle_request)
        result = await correlator.call("public/test", {}, timeout=10.0)
    """

    def __init__(self, stream: Any, request_handler: RequestHandler):
        """Bind to a stream and start its receive loop.

        Args:
            stream: Connected JsonRpcStream
            request_handler: Coroutine function called with server-pushed requests
        """
        self._stream = stream
        self._request_handler = request_handler
        self._ids = itertools.count(1)
        self._pending: dict[int, tuple[str, asyncio.Future]] = {}
        stream.start(self._handle_envelope)

    @property
    def stream(self) -> Any:
        """Stream this correlator is bound to."""
        return self._stream

    @property
    def pending_ids(self) -> list[int]:
        """Ids of calls still waiting for a response."""
        return list(self._pending)

    async def call(self, method: str, params: Any, timeout: float) -> Any:
        """Send a request and wait for its response.

        Args:
            method: JSON-RPC method name
            params: Request parameters
            timeout: Deadline in seconds

        Returns:
            The response's result member

        Raises:
            DeribitConnectionError: If the stream is closed
            DeribitTimeoutError: If no response arrives before the deadline
            DeribitRPCError: If the server reports an error
            DeribitProtocolError: If the response is malformed
        """
        if self._stream.closed:
            raise DeribitConnectionError("WebSocket not connected")

        call_id = next(self._ids)
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[call_id] = (method, future)
        started = time.monotonic()

        try:
            await self._stream.send(make_request(method, params, call_id))
            result = await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Call timeout for {method} (id={call_id})")
            raise DeribitTimeoutError(f"{method} timed out after {timeout}s") from None
        finally:
            self._pending.pop(call_id, None)

        log_latency(logger, method, started, time.monotonic())
        return result

    async def notify(self, method: str, params: Any) -> None:
        """Send a request that expects no response."""
        if self._stream.closed:
            raise DeribitConnectionError("WebSocket not connected")

        await self._stream.send(make_request(method, params))

    async def _handle_envelope(self, envelope: dict) -> None:
        """Route one inbound envelope."""
        if is_request(envelope):
            await self._request_handler(envelope)
            return

        call_id = envelope.get("id")
        entry = self._pending.get(call_id)
        if entry is None or entry[1].done():
            # Late response for a call that already timed out
            logger.debug(f"Dropping response for unknown call id {call_id}")
            return

        method, future = entry
        if envelope.get("error") is not None:
            future.set_exception(DeribitRPCError.from_error_object(method, envelope["error"]))
        elif "result" in envelope:
            future.set_result(envelope["result"])
        else:
            future.set_exception(
                DeribitProtocolError(f"{method}: response {call_id} carries neither result nor error")
            )
