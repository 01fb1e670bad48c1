"""
Event dispatcher for subscription notifications.

Routing is an ordered table of (name, predicate, decoder) routes evaluated
top to bottom; the first route whose predicate matches the channel name
decodes the payload. Channels no route matches are delivered as the raw
JSON text of their payload.

Decoded events are delivered to every callback registered for the exact
channel name, in registration order, on the dispatch path.
"""

import inspect
import json
import logging
import threading
from typing import Any, Callable, NamedTuple, Optional

from deribit_ws.api.errors import NotificationDecodeError
from deribit_ws.api.notifications import (
    AnnouncementNotification,
    DeribitPriceIndexNotification,
    EstimatedExpirationPriceNotification,
    OrderBookGroupNotification,
    OrderBookNotification,
    OrderBookRawNotification,
    PerpetualNotification,
    PortfolioNotification,
    QuoteNotification,
    TickerNotification,
    UserChangesNotification,
    decode_markprice_options,
    decode_price_ranking,
    decode_trades,
    decode_user_orders,
    decode_user_trades,
)

logger = logging.getLogger(__name__)

Callback = Callable[[Any], Any]


class Route(NamedTuple):
    """One row of the routing table."""
    name: str
    matches: Callable[[str], bool]
    decode: Callable[[Any], Any]


def _exact(name: str) -> Callable[[str], bool]:
    return lambda channel: channel == name


def _prefix(prefix: str) -> Callable[[str], bool]:
    return lambda channel: channel.startswith(prefix)


def _book(dots: int, raw: Optional[bool] = None) -> Callable[[str], bool]:
    """book.* channels are told apart by their number of segments."""
    def matches(channel: str) -> bool:
        if not channel.startswith("book.") or channel.count(".") != dots:
            return False
        if raw is None:
            return True
        return channel.endswith(".raw") == raw
    return matches


DEFAULT_ROUTES: tuple[Route, ...] = (
    Route("announcements", _exact("announcements"), AnnouncementNotification.from_payload),
    # book.{instrument}.raw
    Route("book_raw", _book(2, raw=True), OrderBookRawNotification.from_payload),
    # book.{instrument}.{interval}
    Route("book", _book(2, raw=False), OrderBookNotification.from_payload),
    # book.{instrument}.{group}.{depth}.{interval}
    Route("book_group", _book(4), OrderBookGroupNotification.from_payload),
    Route("deribit_price_index", _prefix("deribit_price_index."), DeribitPriceIndexNotification.from_payload),
    Route("deribit_price_ranking", _prefix("deribit_price_ranking."), decode_price_ranking),
    Route(
        "estimated_expiration_price",
        _prefix("estimated_expiration_price."),
        EstimatedExpirationPriceNotification.from_payload,
    ),
    Route("markprice_options", _prefix("markprice.options."), decode_markprice_options),
    Route("perpetual", _prefix("perpetual."), PerpetualNotification.from_payload),
    Route("quote", _prefix("quote."), QuoteNotification.from_payload),
    Route("ticker", _prefix("ticker."), TickerNotification.from_payload),
    Route("trades", _prefix("trades."), decode_trades),
    Route("user_changes", _prefix("user.changes."), UserChangesNotification.from_payload),
    Route("user_orders", _prefix("user.orders."), decode_user_orders),
    Route("user_portfolio", _prefix("user.portfolio."), PortfolioNotification.from_payload),
    Route("user_trades", _prefix("user.trades."), decode_user_trades),
)


def raw_text(data: Any) -> str:
    """Compact JSON text of a payload, used for unrouted channels."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


class EventDispatcher:
    """Decodes notifications and fans them out to channel callbacks.

    Example:
        dispatcher = EventDispatcher()
        dispatcher.on("ticker.BTC-PERPETUAL.100ms", handle_ticker)
        await dispatcher.dispatch(channel, data)
    """

    def __init__(self, routes: tuple[Route, ...] = DEFAULT_ROUTES):
        self._routes = routes
        self._callbacks: dict[str, list[Callback]] = {}
        self._lock = threading.Lock()

    def on(self, channel: str, callback: Callback) -> None:
        """Register callback for a channel.

        Args:
            channel: Exact channel name
            callback: Function or coroutine function called with the decoded event
        """
        with self._lock:
            self._callbacks.setdefault(channel, []).append(callback)

    def off(self, channel: str, callback: Optional[Callback] = None) -> None:
        """Unregister callbacks for a channel.

        Args:
            channel: Exact channel name
            callback: Specific callback to remove, or None to remove all
        """
        with self._lock:
            if channel not in self._callbacks:
                return
            if callback is None:
                del self._callbacks[channel]
            else:
                self._callbacks[channel] = [
                    cb for cb in self._callbacks[channel] if cb != callback
                ]

    def callbacks(self, channel: str) -> list[Callback]:
        """Snapshot of the callbacks registered for a channel."""
        with self._lock:
            return list(self._callbacks.get(channel, ()))

    def route_for(self, channel: str) -> Optional[Route]:
        for route in self._routes:
            if route.matches(channel):
                return route
        return None

    def decode(self, channel: str, data: Any) -> Any:
        """Decode a payload for its channel.

        Raises:
            NotificationDecodeError: If the payload does not fit the routed shape
        """
        route = self.route_for(channel)
        if route is None:
            return raw_text(data)

        try:
            return route.decode(data)
        except (KeyError, TypeError, ValueError, IndexError, AttributeError) as e:
            raise NotificationDecodeError(channel, f"{type(e).__name__}: {e}") from e

    async def dispatch(self, channel: str, data: Any) -> None:
        """Decode one notification and deliver it to the channel's callbacks."""
        callbacks = self.callbacks(channel)
        if not callbacks:
            logger.debug(f"No callbacks for {channel}")
            return

        try:
            event = self.decode(channel, data)
        except NotificationDecodeError as e:
            logger.warning(f"Dropping notification: {e}")
            return

        for callback in callbacks:
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Callback error for {channel}: {e}")
