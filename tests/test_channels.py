"""
Tests for channel name builders.
"""

import pytest

from deribit_ws.api.channels import (
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
from deribit_ws.api.dispatcher import EventDispatcher


class TestChannelBookGroup:
    """Tests for channel_book_group defaults."""

    def test_defaults(self):
        assert channel_book_group("BTC-PERPETUAL") == "book.BTC-PERPETUAL.none.1.100ms"

    def test_explicit_values(self):
        channel = channel_book_group("ETH-PERPETUAL", group="5", depth=10, interval="agg2")

        assert channel == "book.ETH-PERPETUAL.5.10.agg2"

    def test_partial_defaults(self):
        assert channel_book_group("BTC-PERPETUAL", depth=20) == "book.BTC-PERPETUAL.none.20.100ms"

    def test_empty_instrument(self):
        assert channel_book_group("") == ""

    def test_routes_to_grouped_book(self):
        route = EventDispatcher().route_for(channel_book_group("BTC-PERPETUAL"))
        assert route.name == "book_group"


class TestKeyedBuilders:
    """Tests for builders keyed on an index name."""

    def test_volatility_index(self):
        assert channel_deribit_volatility_index(DERIBIT_VOLATILITY_INDEX_NAME_BTC) == (
            "deribit_volatility_index.btc_usd"
        )
        assert channel_deribit_volatility_index(DERIBIT_VOLATILITY_INDEX_NAME_ETH) == (
            "deribit_volatility_index.eth_usd"
        )

    def test_mmp_trigger(self):
        assert channel_user_mmp_trigger("btc_usd") == "user.mmp_trigger.btc_usd"

    @pytest.mark.parametrize("builder", [
        channel_deribit_volatility_index,
        channel_user_mmp_trigger,
        channel_deribit_price_index,
        channel_quote,
        channel_user_portfolio,
    ])
    def test_empty_key(self, builder):
        assert builder("") == ""

    def test_access_log_constant(self):
        assert CHANNEL_USER_ACCESS_LOG == "user.access_log"


class TestInstrumentBuilders:
    """Tests for per-instrument builders."""

    def test_public(self):
        assert channel_book("BTC-PERPETUAL") == "book.BTC-PERPETUAL.100ms"
        assert channel_book("BTC-PERPETUAL", "raw") == "book.BTC-PERPETUAL.raw"
        assert channel_trades("BTC-PERPETUAL", "raw") == "trades.BTC-PERPETUAL.raw"
        assert channel_ticker("ETH-PERPETUAL") == "ticker.ETH-PERPETUAL.100ms"
        assert channel_quote("BTC-PERPETUAL") == "quote.BTC-PERPETUAL"
        assert channel_deribit_price_index("btc_usd") == "deribit_price_index.btc_usd"

    def test_private(self):
        assert channel_user_orders("BTC-PERPETUAL") == "user.orders.BTC-PERPETUAL.raw"
        assert channel_user_trades("BTC-PERPETUAL", "100ms") == "user.trades.BTC-PERPETUAL.100ms"
        assert channel_user_changes("BTC-PERPETUAL") == "user.changes.BTC-PERPETUAL.raw"
        assert channel_user_portfolio("BTC") == "user.portfolio.btc"

    @pytest.mark.parametrize("builder", [
        channel_book,
        channel_trades,
        channel_ticker,
        channel_user_orders,
        channel_user_trades,
        channel_user_changes,
    ])
    def test_empty_instrument(self, builder):
        assert builder("") == ""
