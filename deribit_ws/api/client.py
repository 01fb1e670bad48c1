"""
Deribit WebSocket client.

DeribitWebSocket owns the connection lifecycle:
    dial (with retry) -> authenticate -> restore subscriptions -> heartbeat
and, when auto-reconnect is enabled, a watcher that re-runs that sequence
once after the stream reports loss.

Every outbound call goes through the RpcCorrelator of the current stream;
private calls are gated on the stored access token. Server-pushed
subscription notifications are decoded by the EventDispatcher and
delivered to callbacks registered with on().

Example:
    config = DeribitConfig(api_key="...", secret_key="...")

    async with DeribitWebSocket(config) as client:
        client.on("ticker.BTC-PERPETUAL.100ms", lambda t: print(t.mark_price))
        await client.subscribe(["ticker.BTC-PERPETUAL.100ms"])
        await asyncio.sleep(60)
"""

import asyncio
import logging
from enum import Enum, auto
from typing import Any, Optional

import aiohttp

from deribit_ws.api.auth import Authentication, AuthSession
from deribit_ws.api.dispatcher import Callback, EventDispatcher
from deribit_ws.api.errors import (
    DeribitAPIError,
    DeribitAuthError,
    DeribitConnectionError,
)
from deribit_ws.api.heartbeat import HeartbeatMonitor
from deribit_ws.api.rpc import RpcCorrelator
from deribit_ws.api.subscriptions import SubscriptionRegistry
from deribit_ws.api.transport import JsonRpcStream
from deribit_ws.lib.config import DeribitConfig
from deribit_ws.lib.constants import (
    HEARTBEAT_TEST_REQUEST,
    METHOD_GET_TIME,
    METHOD_PRIVATE_SUBSCRIBE,
    METHOD_PUBLIC_SUBSCRIBE,
    METHOD_SET_HEARTBEAT,
    METHOD_TEST,
    NOTIFICATION_HEARTBEAT,
    NOTIFICATION_SUBSCRIPTION,
    PRIVATE_METHOD_PREFIX,
)

logger = logging.getLogger(__name__)


class WebSocketState(Enum):
    """WebSocket connection state."""
    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()


class DeribitWebSocket:
    """Persistent JSON-RPC client for the Deribit WebSocket API."""

    def __init__(self, config: Optional[DeribitConfig] = None):
        """Initialize client.

        Args:
            config: Client configuration (testnet defaults if not provided)
        """
        self._config = config or DeribitConfig()
        self._logger = self._config.logger or logger

        self._state = WebSocketState.DISCONNECTED
        self._rpc: Optional[RpcCorrelator] = None
        self._auth = AuthSession(self.call, self._send_notification)
        self._subscriptions = SubscriptionRegistry()
        self._dispatcher = EventDispatcher()
        self._heartbeat: Optional[HeartbeatMonitor] = None

        self._start_lock = asyncio.Lock()
        self._subscribe_lock = asyncio.Lock()
        self._watch_task: Optional[asyncio.Task] = None
        self._background_tasks: set[asyncio.Task] = set()
        self._closing = False

    # =========================================================================
    # State
    # =========================================================================

    @property
    def config(self) -> DeribitConfig:
        return self._config

    @property
    def state(self) -> WebSocketState:
        """Get connection state.

        A stream lost without a reconnect watcher reads as DISCONNECTED.
        """
        if self._state == WebSocketState.CONNECTED and not self.is_connected:
            return WebSocketState.DISCONNECTED
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if connected."""
        return (
            self._state == WebSocketState.CONNECTED
            and self._rpc is not None
            and not self._rpc.stream.closed
        )

    @property
    def authentication(self) -> Optional[Authentication]:
        return self._auth.authentication

    @property
    def subscriptions(self) -> list[str]:
        """Requested channels, duplicates included."""
        return self._subscriptions.requested

    @property
    def active_channels(self) -> set[str]:
        """Channels confirmed by the server in this connection lifetime."""
        return self._subscriptions.confirmed

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Connect, authenticate, restore subscriptions and start the heartbeat.

        No-op if already connected.

        Raises:
            DeribitConnectionError: If every dial attempt fails
            DeribitAuthError: If credentials are configured and auth fails
        """
        async with self._start_lock:
            if self.is_connected:
                return
            self._closing = False
            await self._connect()

    async def _connect(self) -> None:
        """Run the connect sequence once."""
        self._state = WebSocketState.CONNECTING
        self._auth.clear()
        self._subscriptions.reset()
        await self._stop_heartbeat()

        watch = self._watch_task
        if watch is not None and not watch.done() and watch is not asyncio.current_task():
            watch.cancel()
        self._watch_task = None

        stream = await self._dial()
        self._rpc = RpcCorrelator(stream, self._handle_request)
        self._state = WebSocketState.CONNECTED

        try:
            if self._config.has_credentials:
                try:
                    await self.authenticate()
                except DeribitAPIError as e:
                    raise DeribitAuthError(
                        f"Authentication failed: {e}", code=e.code, data=e.data
                    ) from e

            await self.reconcile_subscriptions()

            if self._config.server_heartbeat_interval is not None:
                await self.set_heartbeat(self._config.server_heartbeat_interval)
        except (Exception, asyncio.CancelledError):
            await stream.close()
            self._rpc = None
            self._state = WebSocketState.DISCONNECTED
            raise

        if self._config.heartbeat_interval > 0:
            self._heartbeat = HeartbeatMonitor(self.test, self._config.heartbeat_interval)
            self._heartbeat.start()

        if self._config.auto_reconnect:
            self._watch_task = asyncio.create_task(self._watch_disconnect(stream))

        self._logger.info(f"Connected to {self._config.url}")

    async def _dial(self) -> JsonRpcStream:
        """Open the stream, retrying with linearly increasing backoff."""
        attempts = self._config.max_dial_attempts

        for attempt in range(1, attempts + 1):
            try:
                return await JsonRpcStream.open(
                    self._config.url,
                    session=self._config.session,
                    timeout=self._config.dial_timeout,
                    read_limit=self._config.read_limit,
                    proxy=self._config.proxy,
                )
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                self._logger.warning(f"Dial attempt {attempt}/{attempts} failed: {e}")
                if attempt < attempts:
                    await asyncio.sleep(attempt * self._config.dial_backoff)

        self._state = WebSocketState.DISCONNECTED
        raise DeribitConnectionError(
            f"Failed to connect to {self._config.url} after {attempts} attempts"
        )

    async def _watch_disconnect(self, stream: JsonRpcStream) -> None:
        """Reconnect once after the stream reports loss."""
        await stream.wait_disconnected()
        if self._closing:
            return

        self._logger.warning("Connection lost, reconnecting")
        await self._stop_heartbeat()
        self._state = WebSocketState.DISCONNECTED
        await stream.close()

        if self._config.reconnect_delay > 0:
            await asyncio.sleep(self._config.reconnect_delay)

        try:
            await self.start()
        except DeribitAPIError as e:
            self._logger.warning(f"Reconnect failed: {e}")

    async def _stop_heartbeat(self) -> None:
        heartbeat, self._heartbeat = self._heartbeat, None
        if heartbeat is not None:
            await heartbeat.stop()

    async def close(self) -> None:
        """Close the connection; no reconnect follows."""
        self._closing = True

        watch, self._watch_task = self._watch_task, None
        if watch is not None and not watch.done() and watch is not asyncio.current_task():
            watch.cancel()
            try:
                await watch
            except asyncio.CancelledError:
                pass

        await self._stop_heartbeat()

        for task in list(self._background_tasks):
            task.cancel()

        if self._rpc is not None:
            await self._rpc.stream.close()
            self._rpc = None

        self._state = WebSocketState.DISCONNECTED
        self._logger.info("WebSocket closed")

    async def __aenter__(self) -> "DeribitWebSocket":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Calls
    # =========================================================================

    def _prepare(self, method: str, params: Optional[dict], private: Optional[bool]) -> dict:
        """Gate on connection state and inject the token for private calls."""
        if not self.is_connected:
            raise DeribitConnectionError("WebSocket not connected")

        params = {} if params is None else dict(params)

        if private is None:
            private = method.startswith(PRIVATE_METHOD_PREFIX)
        if private:
            params = self._auth.inject(params)

        return params

    async def call(
        self,
        method: str,
        params: Optional[dict] = None,
        *,
        private: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Issue a JSON-RPC call and wait for its result.

        Args:
            method: Method name, e.g. "public/get_instruments"
            params: Call parameters (empty if not provided)
            private: Require and inject the access token; inferred from the
                "private/" prefix when None
            timeout: Deadline in seconds (config.call_timeout if not provided)

        Returns:
            The response's result member

        Raises:
            DeribitConnectionError: If not connected or the transport fails
            DeribitAuthError: If the call is private and no token is stored
            DeribitTimeoutError: If no response arrives in time
            DeribitRPCError: If the server reports an error
        """
        params = self._prepare(method, params, private)
        if timeout is None:
            timeout = self._config.call_timeout

        try:
            return await self._rpc.call(method, params, timeout)
        except DeribitAPIError:
            raise
        except (aiohttp.ClientError, ConnectionError) as e:
            raise DeribitConnectionError(f"{method}: {e}") from e
        except Exception as e:
            self._logger.error(f"Unexpected error in {method}: {e}", exc_info=True)
            raise DeribitAPIError(f"{method}: {e}") from e

    async def notify(
        self,
        method: str,
        params: Optional[dict] = None,
        *,
        private: Optional[bool] = None,
    ) -> None:
        """Send a JSON-RPC notification (no response expected)."""
        params = self._prepare(method, params, private)
        await self._send_notification(method, params)

    async def _send_notification(self, method: str, params: dict) -> None:
        if not self.is_connected:
            raise DeribitConnectionError("WebSocket not connected")

        try:
            await self._rpc.notify(method, params)
        except (aiohttp.ClientError, ConnectionError) as e:
            raise DeribitConnectionError(f"{method}: {e}") from e

    async def test(self) -> dict:
        """public/test; used as the liveness probe."""
        return await self.call(METHOD_TEST, {})

    async def get_time(self) -> int:
        """Server time in milliseconds since epoch."""
        return await self.call(METHOD_GET_TIME, {})

    async def set_heartbeat(self, interval: int) -> str:
        """Ask the server to send heartbeat requests every `interval` seconds."""
        return await self.call(METHOD_SET_HEARTBEAT, {"interval": interval})

    async def public_subscribe(self, channels: list[str]) -> list[str]:
        return await self.call(METHOD_PUBLIC_SUBSCRIBE, {"channels": channels})

    async def private_subscribe(self, channels: list[str]) -> list[str]:
        return await self.call(METHOD_PRIVATE_SUBSCRIBE, {"channels": channels})

    async def authenticate(
        self,
        api_key: Optional[str] = None,
        secret_key: Optional[str] = None,
    ) -> Authentication:
        """Authenticate with client credentials (configured ones by default)."""
        return await self._auth.authenticate(
            api_key if api_key is not None else self._config.api_key,
            secret_key if secret_key is not None else self._config.secret_key,
        )

    async def logout(self) -> None:
        """Invalidate the access token server-side."""
        await self._auth.logout()

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def on(self, channel: str, callback: Callback) -> None:
        """Register callback for a channel.

        Args:
            channel: Exact channel name
            callback: Function or coroutine function called with each event
        """
        self._dispatcher.on(channel, callback)

    def off(self, channel: str, callback: Optional[Callback] = None) -> None:
        """Unregister one callback, or all callbacks, of a channel."""
        self._dispatcher.off(channel, callback)

    async def subscribe(self, channels: list[str]) -> None:
        """Request channels and subscribe to the ones not yet active.

        While disconnected the channels are only recorded; they are
        subscribed by the next start().
        """
        self._subscriptions.add(channels)
        if not self.is_connected:
            self._logger.debug(f"Not connected, deferring subscription to {channels}")
            return
        await self.reconcile_subscriptions()

    async def reconcile_subscriptions(self) -> None:
        """Subscribe every requested channel not yet confirmed.

        One call per non-empty bucket (public, private). A failing bucket is
        logged and its channels stay unconfirmed for the next pass.
        """
        async with self._subscribe_lock:
            public, private = self._subscriptions.pending()

            if public:
                try:
                    await self.public_subscribe(public)
                    self._subscriptions.mark_confirmed(public)
                    self._logger.info(f"Subscribed to {len(public)} public channels")
                except DeribitAPIError as e:
                    self._logger.warning(f"Public subscribe failed: {e}")

            if private:
                try:
                    await self.private_subscribe(private)
                    self._subscriptions.mark_confirmed(private)
                    self._logger.info(f"Subscribed to {len(private)} private channels")
                except DeribitAPIError as e:
                    self._logger.warning(f"Private subscribe failed: {e}")

    # =========================================================================
    # Server-pushed requests
    # =========================================================================

    async def _handle_request(self, envelope: dict) -> None:
        """Handle a request-shaped envelope pushed by the server."""
        method = envelope.get("method")
        params = envelope.get("params") or {}

        if method == NOTIFICATION_SUBSCRIPTION:
            channel = params.get("channel")
            if not isinstance(channel, str):
                self._logger.warning(f"Subscription notification without channel: {envelope}")
                return
            await self._dispatcher.dispatch(channel, params.get("data"))

        elif method == NOTIFICATION_HEARTBEAT:
            if params.get("type") == HEARTBEAT_TEST_REQUEST:
                # Answered off the receive path so the response can be read
                task = asyncio.create_task(self._answer_test_request())
                self._background_tasks.add(task)
                task.add_done_callback(self._background_tasks.discard)

        else:
            self._logger.debug(f"Unhandled server request: {method}")

    async def _answer_test_request(self) -> None:
        try:
            await self.test()
        except DeribitAPIError as e:
            self._logger.warning(f"Heartbeat test_request answer failed: {e}")


async def create_client(config: Optional[DeribitConfig] = None) -> DeribitWebSocket:
    """Build a client and start it when config.auto_start is set.

    Args:
        config: Client configuration

    Returns:
        DeribitWebSocket instance
    """
    client = DeribitWebSocket(config)
    if client.config.auto_start:
        await client.start()
    return client
