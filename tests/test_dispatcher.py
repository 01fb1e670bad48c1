"""
Tests for channel routing and callback delivery.

Tests cover:
- Route selection for every known channel family
- Raw JSON text for unknown channels
- Decode failures are logged and dropped
- Callback ordering, coroutine callbacks, raising callbacks
- on/off registration
"""

import json
import logging
from unittest.mock import MagicMock

import pytest

from deribit_ws.api.dispatcher import DEFAULT_ROUTES, EventDispatcher, raw_text
from deribit_ws.api.errors import NotificationDecodeError
from deribit_ws.api.notifications import (
    DeribitPriceIndexNotification,
    Order,
    OrderBookGroupNotification,
    OrderBookNotification,
    OrderBookRawNotification,
)


BOOK_CHANGE = {
    "type": "change",
    "instrument_name": "BTC-PERPETUAL",
    "timestamp": 1700000000000,
    "change_id": 12,
    "prev_change_id": 11,
    "bids": [["new", 35000.0, 10.0]],
    "asks": [["delete", 35010.0, 0.0]],
}

ORDER = {
    "order_id": "ETH-1",
    "instrument_name": "ETH-PERPETUAL",
    "order_state": "open",
    "order_type": "limit",
    "direction": "buy",
    "amount": 10,
    "price": 1800.5,
}


class TestRouteSelection:
    """Tests for EventDispatcher.route_for."""

    @pytest.mark.parametrize("channel,route", [
        ("announcements", "announcements"),
        ("book.BTC-PERPETUAL.raw", "book_raw"),
        ("book.BTC-PERPETUAL.100ms", "book"),
        ("book.BTC-PERPETUAL.none.10.100ms", "book_group"),
        ("deribit_price_index.btc_usd", "deribit_price_index"),
        ("deribit_price_ranking.btc_usd", "deribit_price_ranking"),
        ("estimated_expiration_price.btc_usd", "estimated_expiration_price"),
        ("markprice.options.btc_usd", "markprice_options"),
        ("perpetual.BTC-PERPETUAL.raw", "perpetual"),
        ("quote.BTC-PERPETUAL", "quote"),
        ("ticker.BTC-PERPETUAL.raw", "ticker"),
        ("trades.BTC-PERPETUAL.raw", "trades"),
        ("trades.future.BTC.100ms", "trades"),
        ("user.changes.BTC-PERPETUAL.raw", "user_changes"),
        ("user.orders.BTC-PERPETUAL.raw", "user_orders"),
        ("user.portfolio.btc", "user_portfolio"),
        ("user.trades.future.BTC.100ms", "user_trades"),
    ])
    def test_known_channels(self, channel, route):
        assert EventDispatcher().route_for(channel).name == route

    @pytest.mark.parametrize("channel", [
        "deribit_volatility_index.btc_usd",
        "book.BTC-PERPETUAL.none.10",
        "user.access_log",
        "user.mmp_trigger.btc_usd",
        "announcements.extra",
        "something.new",
    ])
    def test_unknown_channels(self, channel):
        assert EventDispatcher().route_for(channel) is None

    def test_route_names_unique(self):
        names = [route.name for route in DEFAULT_ROUTES]
        assert len(names) == len(set(names))


class TestDecode:
    """Tests for EventDispatcher.decode."""

    def test_book_variants(self):
        dispatcher = EventDispatcher()

        raw = dispatcher.decode("book.BTC-PERPETUAL.raw", BOOK_CHANGE)
        interval = dispatcher.decode("book.BTC-PERPETUAL.100ms", BOOK_CHANGE)
        group = dispatcher.decode("book.BTC-PERPETUAL.none.1.100ms", {
            "instrument_name": "BTC-PERPETUAL",
            "timestamp": 1700000000000,
            "change_id": 3,
            "bids": [[35000.0, 1.0]],
            "asks": [[35005.0, 2.0]],
        })

        assert type(raw) is OrderBookRawNotification
        assert type(interval) is OrderBookNotification
        assert isinstance(group, OrderBookGroupNotification)
        assert group.best_bid.price == 35000.0

    def test_unknown_channel_returns_raw_text(self):
        data = {"volatility": 52.1, "timestamp": 1700000000000, "index_name": "btc_usd"}

        result = EventDispatcher().decode("deribit_volatility_index.btc_usd", data)

        assert isinstance(result, str)
        assert json.loads(result) == data
        assert " " not in result

    def test_user_orders_single_object(self):
        result = EventDispatcher().decode("user.orders.ETH-PERPETUAL.raw", ORDER)

        assert len(result) == 1
        assert isinstance(result[0], Order)

    def test_user_orders_array(self):
        result = EventDispatcher().decode("user.orders.any.ETH.100ms", [ORDER, ORDER])

        assert len(result) == 2

    @pytest.mark.parametrize("channel,data", [
        ("deribit_price_index.btc_usd", {"price": 1}),
        ("trades.BTC-PERPETUAL.raw", {"not": "a list"}),
        ("quote.BTC-PERPETUAL", "text"),
        ("book.BTC-PERPETUAL.raw", dict(BOOK_CHANGE, bids=[["new", 1.0, 2.0, 3.0]])),
        ("ticker.BTC-PERPETUAL.raw", {"instrument_name": "X", "timestamp": "soon", "mark_price": 1}),
        ("book.BTC-PERPETUAL.raw", [1, 2]),
        ("book.BTC-PERPETUAL.raw", None),
        ("book.BTC-PERPETUAL.raw", "x"),
        ("book.BTC-PERPETUAL.100ms", [1, 2]),
        ("book.BTC-PERPETUAL.none.10.100ms", None),
        ("perpetual.BTC-PERPETUAL.raw", [1]),
    ])
    def test_malformed_payload_raises(self, channel, data):
        with pytest.raises(NotificationDecodeError) as exc_info:
            EventDispatcher().decode(channel, data)

        assert exc_info.value.channel == channel

    def test_raw_text_compact(self):
        assert raw_text({"a": [1, 2]}) == '{"a":[1,2]}'

    def test_raw_text_keeps_non_ascii(self):
        assert raw_text({"title": "Wartung für café €"}) == '{"title":"Wartung für café €"}'


class TestDispatch:
    """Tests for EventDispatcher.dispatch."""

    @pytest.mark.asyncio
    async def test_callbacks_in_registration_order(self):
        dispatcher = EventDispatcher()
        seen = []
        dispatcher.on("deribit_price_index.btc_usd", lambda e: seen.append(("first", e)))
        dispatcher.on("deribit_price_index.btc_usd", lambda e: seen.append(("second", e)))

        await dispatcher.dispatch(
            "deribit_price_index.btc_usd",
            {"index_name": "btc_usd", "price": 35000.1, "timestamp": 1700000000000},
        )

        assert [name for name, _ in seen] == ["first", "second"]
        assert isinstance(seen[0][1], DeribitPriceIndexNotification)
        assert seen[0][1] is seen[1][1]

    @pytest.mark.asyncio
    async def test_coroutine_callback_awaited(self):
        dispatcher = EventDispatcher()
        seen = []

        async def handler(event):
            seen.append(event)

        dispatcher.on("something.new", handler)
        await dispatcher.dispatch("something.new", [1, 2])

        assert seen == ["[1,2]"]

    @pytest.mark.asyncio
    async def test_raising_callback_does_not_stop_others(self):
        dispatcher = EventDispatcher()
        after = MagicMock()
        dispatcher.on("something.new", MagicMock(side_effect=RuntimeError("bad handler")))
        dispatcher.on("something.new", after)

        await dispatcher.dispatch("something.new", {})

        after.assert_called_once_with("{}")

    @pytest.mark.asyncio
    async def test_decode_failure_dropped(self, caplog):
        dispatcher = EventDispatcher()
        callback = MagicMock()
        dispatcher.on("quote.BTC-PERPETUAL", callback)

        with caplog.at_level(logging.WARNING, logger="deribit_ws.api.dispatcher"):
            await dispatcher.dispatch("quote.BTC-PERPETUAL", {"timestamp": 1})

        callback.assert_not_called()
        assert "Dropping notification" in caplog.text

    @pytest.mark.asyncio
    async def test_exact_channel_match_only(self):
        dispatcher = EventDispatcher()
        callback = MagicMock()
        dispatcher.on("quote.BTC-PERPETUAL", callback)

        await dispatcher.dispatch("quote.ETH-PERPETUAL", {})

        callback.assert_not_called()


class TestRegistration:
    """Tests for on/off."""

    def test_off_one_callback(self):
        dispatcher = EventDispatcher()
        keep, drop = MagicMock(), MagicMock()
        dispatcher.on("quote.A", keep)
        dispatcher.on("quote.A", drop)

        dispatcher.off("quote.A", drop)

        assert dispatcher.callbacks("quote.A") == [keep]

    def test_off_all_callbacks(self):
        dispatcher = EventDispatcher()
        dispatcher.on("quote.A", MagicMock())
        dispatcher.on("quote.A", MagicMock())

        dispatcher.off("quote.A")

        assert dispatcher.callbacks("quote.A") == []

    def test_off_unknown_channel(self):
        EventDispatcher().off("never.registered")

    def test_callbacks_snapshot(self):
        dispatcher = EventDispatcher()
        dispatcher.on("quote.A", MagicMock())

        snapshot = dispatcher.callbacks("quote.A")
        snapshot.clear()

        assert len(dispatcher.callbacks("quote.A")) == 1
