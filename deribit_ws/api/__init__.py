"""
Deribit WebSocket API Module.

This module provides a persistent JSON-RPC client for the Deribit v2
WebSocket API.

Key Components:
- DeribitWebSocket: Connection supervisor (dial, auth, subscriptions, heartbeat, reconnect)
- RpcCorrelator: Request/response matching with per-call deadlines
- EventDispatcher: Channel routing of subscription notifications to typed payloads
- channels: Channel name builders

Usage:
    from deribit_ws.api import DeribitWebSocket, channel_book_group
    from deribit_ws.lib.config import load_config

    client = DeribitWebSocket(load_config())
    await client.start()

    channel = channel_book_group("BTC-PERPETUAL")
    client.on(channel, lambda book: print(book.best_bid))
    await client.subscribe([channel])

Important Notes:
- Channels prefixed "user." are private and need configured credentials
- Calls in flight during a reconnect are not failed early; they time out
- Callbacks run on the receive path; do not await client calls inside them
"""

from deribit_ws.api.client import (
    DeribitWebSocket,
    WebSocketState,
    create_client,
)
from deribit_ws.api.errors import (
    DeribitAPIError,
    DeribitConnectionError,
    DeribitAuthError,
    DeribitProtocolError,
    NotificationDecodeError,
    DeribitTimeoutError,
    DeribitRPCError,
)
from deribit_ws.api.auth import Authentication, AuthSession
from deribit_ws.api.dispatcher import EventDispatcher, Route, DEFAULT_ROUTES
from deribit_ws.api.rpc import RpcCorrelator
from deribit_ws.api.subscriptions import SubscriptionRegistry
from deribit_ws.api.transport import JsonRpcStream
from deribit_ws.api.channels import (
    CHANNEL_ANNOUNCEMENTS,
    CHANNEL_USER_ACCESS_LOG,
    DERIBIT_VOLATILITY_INDEX_NAME_BTC,
    DERIBIT_VOLATILITY_INDEX_NAME_ETH,
    channel_book,
    channel_book_group,
    channel_deribit_price_index,
    channel_deribit_volatility_index,
    channel_quote,
    channel_ticker,
    channel_trades,
    channel_user_changes,
    channel_user_mmp_trigger,
    channel_user_orders,
    channel_user_portfolio,
    channel_user_trades,
)

__all__ = [
    # Client
    "DeribitWebSocket",
    "WebSocketState",
    "create_client",
    # Errors
    "DeribitAPIError",
    "DeribitConnectionError",
    "DeribitAuthError",
    "DeribitProtocolError",
    "NotificationDecodeError",
    "DeribitTimeoutError",
    "DeribitRPCError",
    # Components
    "Authentication",
    "AuthSession",
    "EventDispatcher",
    "Route",
    "DEFAULT_ROUTES",
    "RpcCorrelator",
    "SubscriptionRegistry",
    "JsonRpcStream",
    # Channels
    "CHANNEL_ANNOUNCEMENTS",
    "CHANNEL_USER_ACCESS_LOG",
    "DERIBIT_VOLATILITY_INDEX_NAME_BTC",
    "DERIBIT_VOLATILITY_INDEX_NAME_ETH",
    "channel_book",
    "channel_book_group",
    "channel_deribit_price_index",
    "channel_deribit_volatility_index",
    "channel_quote",
    "channel_ticker",
    "channel_trades",
    "channel_user_changes",
    "channel_user_mmp_trigger",
    "channel_user_orders",
    "channel_user_portfolio",
    "channel_user_trades",
]
