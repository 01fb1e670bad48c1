"""
JSON-RPC message stream over an aiohttp WebSocket.

The stream is the only code that touches the socket. It:
- Dials the endpoint (with an optional injected session and proxy)
- Serialises outgoing envelopes as JSON text frames
- Runs a single receive task that decodes frames and hands them to a handler
- Fires a one-shot disconnect signal when the socket is lost or closed

It knows nothing about call ids, authentication or channels.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from deribit_ws.api.errors import DeribitConnectionError
from deribit_ws.lib.constants import DEFAULT_DIAL_TIMEOUT_SECONDS, DEFAULT_READ_LIMIT_BYTES

logger = logging.getLogger(__name__)

EnvelopeHandler = Callable[[dict], Awaitable[None]]

# Frames that end the receive loop
_TERMINAL_MSG_TYPES = (
    aiohttp.WSMsgType.CLOSE,
    aiohttp.WSMsgType.CLOSING,
    aiohttp.WSMsgType.CLOSED,
)


class JsonRpcStream:
    """Duplex stream of JSON-RPC envelopes over one WebSocket connection.

    Example:
        stream = await JsonRpcStream.open("wss://test.deribit.com/ws/api/v2/")
        stream.start(handle_envelope)
        await stream.send({"jsonrpc": "2.0", "id": 1, "method": "public/test", "params": {}})
        await stream.wait_disconnected()
    """

    def __init__(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        session: Optional[aiohttp.ClientSession] = None,
        owns_session: bool = False,
    ):
        """Wrap an already connected socket.

        Args:
            ws: Connected aiohttp WebSocket
            session: Session the socket was dialed with
            owns_session: Close the session together with the stream
        """
        self._ws = ws
        self._session = session
        self._owns_session = owns_session
        self._handler: Optional[EnvelopeHandler] = None
        self._receive_task: Optional[asyncio.Task] = None
        self._disconnected = asyncio.Event()

    @classmethod
    async def open(
        cls,
        url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = DEFAULT_DIAL_TIMEOUT_SECONDS,
        read_limit: int = DEFAULT_READ_LIMIT_BYTES,
        proxy: Optional[str] = None,
    ) -> "JsonRpcStream":
        """Dial a WebSocket endpoint.

        Args:
            url: WebSocket URL
            session: Optional aiohttp session to dial with
            timeout: Dial timeout in seconds
            read_limit: Largest inbound frame in bytes
            proxy: Optional HTTP proxy URL

        Returns:
            Connected stream (receive loop not yet started)

        Raises:
            aiohttp.ClientError, asyncio.TimeoutError, OSError: If the dial fails
        """
        owns_session = session is None
        if session is None:
            session = aiohttp.ClientSession()

        try:
            ws = await asyncio.wait_for(
                session.ws_connect(
                    url,
                    max_msg_size=read_limit,
                    proxy=proxy,
                    autoping=True,
                ),
                timeout=timeout,
            )
        except BaseException:
            if owns_session:
                await session.close()
            raise

        logger.info(f"Connected to {url}")
        return cls(ws, session=session, owns_session=owns_session)

    @property
    def closed(self) -> bool:
        """The stream can no longer carry messages."""
        return self._disconnected.is_set() or self._ws.closed

    def start(self, handler: EnvelopeHandler) -> None:
        """Start delivering inbound envelopes to handler.

        Args:
            handler: Coroutine function called with each decoded envelope
        """
        if self._receive_task is not None:
            raise RuntimeError("Receive loop already started")
        self._handler = handler
        self._receive_task = asyncio.create_task(self._receive_loop())

    async def send(self, envelope: dict) -> None:
        """Send one envelope.

        Raises:
            DeribitConnectionError: If the stream is closed
        """
        if self.closed:
            raise DeribitConnectionError("WebSocket not connected")

        text = json.dumps(envelope)
        logger.debug(f"-> {text}")
        await self._ws.send_str(text)

    async def wait_disconnected(self) -> None:
        """Suspend until the connection is lost or closed."""
        await self._disconnected.wait()

    async def close(self) -> None:
        """Close the socket and fire the disconnect signal."""
        if self._receive_task and self._receive_task is not asyncio.current_task():
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass

        if not self._ws.closed:
            await self._ws.close()

        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

        self._disconnected.set()

    def _decode(self, text: str) -> Optional[dict]:
        """Decode a text frame into an envelope, or None if it is malformed."""
        try:
            envelope = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"Dropping undecodable frame: {e}: {text[:200]}")
            return None

        if not isinstance(envelope, dict):
            logger.warning(f"Dropping non-object frame: {text[:200]}")
            return None

        return envelope

    async def _receive_loop(self) -> None:
        """Background task to receive and dispatch envelopes."""
        try:
            while True:
                msg = await self._ws.receive()

                if msg.type == aiohttp.WSMsgType.TEXT:
                    logger.debug(f"<- {msg.data}")
                    envelope = self._decode(msg.data)
                    if envelope is None:
                        continue
                    try:
                        await self._handler(envelope)
                    except Exception as e:
                        logger.error(f"Envelope handler error: {e}", exc_info=True)

                elif msg.type in _TERMINAL_MSG_TYPES:
                    logger.warning("WebSocket closed by server")
                    break

                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.error(f"WebSocket error: {msg.data}")
                    break

        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Receive loop error: {e}")
        finally:
            self._disconnected.set()
