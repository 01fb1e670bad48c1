"""
Channel name builders.

Parameterised channels are assembled here so callers do not hand-format
dotted names. Builders with an empty key argument return "" instead of a
malformed name.
"""

from typing import Optional

DERIBIT_VOLATILITY_INDEX_NAME_BTC = "btc_usd"
DERIBIT_VOLATILITY_INDEX_NAME_ETH = "eth_usd"

CHANNEL_ANNOUNCEMENTS = "announcements"
CHANNEL_USER_ACCESS_LOG = "user.access_log"

DEFAULT_BOOK_GROUP = "none"
DEFAULT_BOOK_DEPTH = 1
DEFAULT_INTERVAL = "100ms"


def channel_book_group(
    instrument_name: str,
    group: Optional[str] = None,
    depth: Optional[int] = None,
    interval: Optional[str] = None,
) -> str:
    """book.{instrument}.{group}.{depth}.{interval}

    Args:
        instrument_name: Instrument, e.g. "BTC-PERPETUAL"
        group: Price grouping (default "none")
        depth: Levels per side (default 1)
        interval: Notification interval (default "100ms")
    """
    if not instrument_name:
        return ""
    group = group or DEFAULT_BOOK_GROUP
    depth = depth or DEFAULT_BOOK_DEPTH
    interval = interval or DEFAULT_INTERVAL
    return f"book.{instrument_name}.{group}.{depth}.{interval}"


def channel_user_mmp_trigger(index_name: str) -> str:
    """user.mmp_trigger.{index_name}"""
    if not index_name:
        return ""
    return f"user.mmp_trigger.{index_name}"


def channel_deribit_volatility_index(index_name: str) -> str:
    """deribit_volatility_index.{index_name}"""
    if not index_name:
        return ""
    return f"deribit_volatility_index.{index_name}"


def channel_book(instrument_name: str, interval: str = DEFAULT_INTERVAL) -> str:
    """book.{instrument}.{interval}; interval "raw" gives tick-by-tick changes."""
    if not instrument_name:
        return ""
    return f"book.{instrument_name}.{interval}"


def channel_trades(instrument_name: str, interval: str = DEFAULT_INTERVAL) -> str:
    if not instrument_name:
        return ""
    return f"trades.{instrument_name}.{interval}"


def channel_ticker(instrument_name: str, interval: str = DEFAULT_INTERVAL) -> str:
    if not instrument_name:
        return ""
    return f"ticker.{instrument_name}.{interval}"


def channel_quote(instrument_name: str) -> str:
    if not instrument_name:
        return ""
    return f"quote.{instrument_name}"


def channel_deribit_price_index(index_name: str) -> str:
    if not index_name:
        return ""
    return f"deribit_price_index.{index_name}"


def channel_user_orders(instrument_name: str, interval: str = "raw") -> str:
    if not instrument_name:
        return ""
    return f"user.orders.{instrument_name}.{interval}"


def channel_user_trades(instrument_name: str, interval: str = "raw") -> str:
    if not instrument_name:
        return ""
    return f"user.trades.{instrument_name}.{interval}"


def channel_user_changes(instrument_name: str, interval: str = "raw") -> str:
    if not instrument_name:
        return ""
    return f"user.changes.{instrument_name}.{interval}"


def channel_user_portfolio(currency: str) -> str:
    """user.portfolio.{currency}, currency lower-cased as the server expects."""
    if not currency:
        return ""
    return f"user.portfolio.{currency.lower()}"
