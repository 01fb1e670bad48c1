"""
Typed payloads for subscription notifications.

Each dataclass decodes the `data` member of a `subscription` notification
for one family of channels. Required members are read with indexing so a
malformed payload raises (KeyError, TypeError or ValueError); the dispatcher
turns that into a NotificationDecodeError and drops the event.

Channel families:
- announcements
- book.{instrument}.raw / book.{instrument}.{interval} / book.{instrument}.{group}.{depth}.{interval}
- deribit_price_index.{index} / deribit_price_ranking.{index}
- estimated_expiration_price.{index}
- markprice.options.{index}
- perpetual.{instrument}.{interval}
- quote.{instrument} / ticker.{instrument}.{interval} / trades.{instrument}.{interval}
- user.changes.* / user.orders.* / user.portfolio.{currency} / user.trades.*
"""

from dataclasses import dataclass, field
from typing import Any, Optional


def _optional_float(value: Any) -> Optional[float]:
    """Numeric members that the server may omit or send as a marker string."""
    if value is None or isinstance(value, str):
        return None
    return float(value)


def _require_list(data: Any) -> list:
    if not isinstance(data, list):
        raise TypeError(f"expected a list payload, got {type(data).__name__}")
    return data


# =============================================================================
# Platform
# =============================================================================

@dataclass
class AnnouncementNotification:
    """Platform announcement.

    Attributes:
        id: Announcement id
        title: Title
        body: HTML body
        publication_timestamp: Publication time in ms since epoch
        important: Whether the announcement is flagged important
        action: "new" or "delete"
    """
    id: int
    title: str
    body: str
    publication_timestamp: int
    important: bool = False
    action: str = ""

    @classmethod
    def from_payload(cls, data: dict) -> "AnnouncementNotification":
        """Create AnnouncementNotification from notification data."""
        return cls(
            id=int(data["id"]),
            title=str(data.get("title", "")),
            body=str(data.get("body", "")),
            publication_timestamp=int(data["publication_timestamp"]),
            important=bool(data.get("important", False)),
            action=str(data.get("action", "")),
        )


# =============================================================================
# Order Book
# =============================================================================

@dataclass
class BookLevel:
    """One order book level.

    Raw and interval books send [action, price, amount]; grouped books send
    [price, amount] and have no action.
    """
    price: float
    amount: float
    action: Optional[str] = None

    @classmethod
    def from_payload(cls, level: list) -> "BookLevel":
        """Create BookLevel from a level array."""
        if len(level) == 3:
            action, price, amount = level
            return cls(price=float(price), amount=float(amount), action=str(action))
        if len(level) == 2:
            price, amount = level
            return cls(price=float(price), amount=float(amount))
        raise ValueError(f"book level must have 2 or 3 members, got {len(level)}")


def _levels(data: dict, side: str) -> list[BookLevel]:
    return [BookLevel.from_payload(level) for level in data[side]]


@dataclass
class OrderBookRawNotification:
    """Tick-by-tick order book change (book.{instrument}.raw).

    Attributes:
        instrument_name: Instrument
        timestamp: Server time in ms
        change_id: Id of this change
        prev_change_id: Id of the previous change (None on the first message)
        bids: Changed bid levels
        asks: Changed ask levels
    """
    instrument_name: str
    timestamp: int
    change_id: int
    prev_change_id: Optional[int] = None
    bids: list[BookLevel] = field(default_factory=list)
    asks: list[BookLevel] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict) -> "OrderBookRawNotification":
        """Create OrderBookRawNotification from notification data."""
        prev = data.get("prev_change_id")
        return cls(
            instrument_name=str(data["instrument_name"]),
            timestamp=int(data["timestamp"]),
            change_id=int(data["change_id"]),
            prev_change_id=int(prev) if prev is not None else None,
            bids=_levels(data, "bids"),
            asks=_levels(data, "asks"),
        )


@dataclass
class OrderBookNotification(OrderBookRawNotification):
    """Aggregated order book change (book.{instrument}.{interval}).

    Attributes:
        type: "snapshot" or "change"
    """
    type: str = "change"

    @classmethod
    def from_payload(cls, data: dict) -> "OrderBookNotification":
        """Create OrderBookNotification from notification data."""
        base = OrderBookRawNotification.from_payload(data)
        return cls(
            instrument_name=base.instrument_name,
            timestamp=base.timestamp,
            change_id=base.change_id,
            prev_change_id=base.prev_change_id,
            bids=base.bids,
            asks=base.asks,
            type=str(data.get("type", "change")),
        )

    @property
    def is_snapshot(self) -> bool:
        """Whether this message replaces the whole book."""
        return self.type == "snapshot"


@dataclass
class OrderBookGroupNotification:
    """Grouped order book snapshot (book.{instrument}.{group}.{depth}.{interval}).

    Attributes:
        instrument_name: Instrument
        timestamp: Server time in ms
        change_id: Id of this snapshot
        bids: Bid levels, best first
        asks: Ask levels, best first
    """
    instrument_name: str
    timestamp: int
    change_id: int
    bids: list[BookLevel] = field(default_factory=list)
    asks: list[BookLevel] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict) -> "OrderBookGroupNotification":
        """Create OrderBookGroupNotification from notification data."""
        return cls(
            instrument_name=str(data["instrument_name"]),
            timestamp=int(data["timestamp"]),
            change_id=int(data["change_id"]),
            bids=_levels(data, "bids"),
            asks=_levels(data, "asks"),
        )

    @property
    def best_bid(self) -> Optional[BookLevel]:
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> Optional[BookLevel]:
        return self.asks[0] if self.asks else None


# =============================================================================
# Index and Pricing
# =============================================================================

@dataclass
class DeribitPriceIndexNotification:
    """Index price update."""
    index_name: str
    price: float
    timestamp: int

    @classmethod
    def from_payload(cls, data: dict) -> "DeribitPriceIndexNotification":
        """Create DeribitPriceIndexNotification from notification data."""
        return cls(
            index_name=str(data["index_name"]),
            price=float(data["price"]),
            timestamp=int(data["timestamp"]),
        )


@dataclass
class PriceRankingEntry:
    """One exchange's contribution to an index.

    Attributes:
        identifier: Exchange identifier
        price: Price used by the index
        original_price: Price as quoted by the exchange
        weight: Weight in the index (percent)
        enabled: Whether the exchange currently contributes
        timestamp: Quote time in ms
    """
    identifier: str
    price: Optional[float]
    original_price: Optional[float]
    weight: float
    enabled: bool
    timestamp: int

    @classmethod
    def from_payload(cls, data: dict) -> "PriceRankingEntry":
        """Create PriceRankingEntry from one ranking member."""
        return cls(
            identifier=str(data["identifier"]),
            price=_optional_float(data.get("price")),
            original_price=_optional_float(data.get("original_price")),
            weight=float(data.get("weight", 0)),
            enabled=bool(data.get("enabled", False)),
            timestamp=int(data["timestamp"]),
        )


def decode_price_ranking(data: Any) -> list[PriceRankingEntry]:
    """deribit_price_ranking payloads are arrays."""
    return [PriceRankingEntry.from_payload(entry) for entry in _require_list(data)]


@dataclass
class EstimatedExpirationPriceNotification:
    """Estimated expiration price for an index."""
    seconds: int
    price: float
    is_estimated: bool

    @classmethod
    def from_payload(cls, data: dict) -> "EstimatedExpirationPriceNotification":
        """Create EstimatedExpirationPriceNotification from notification data."""
        return cls(
            seconds=int(data["seconds"]),
            price=float(data["price"]),
            is_estimated=bool(data.get("is_estimated", False)),
        )


@dataclass
class MarkPriceOption:
    """Mark price and implied volatility of one option."""
    instrument_name: str
    mark_price: float
    iv: float
    timestamp: int

    @classmethod
    def from_payload(cls, data: dict) -> "MarkPriceOption":
        """Create MarkPriceOption from one markprice.options member."""
        return cls(
            instrument_name=str(data["instrument_name"]),
            mark_price=float(data["mark_price"]),
            iv=float(data["iv"]),
            timestamp=int(data["timestamp"]),
        )


def decode_markprice_options(data: Any) -> list[MarkPriceOption]:
    """markprice.options payloads are arrays."""
    return [MarkPriceOption.from_payload(entry) for entry in _require_list(data)]


@dataclass
class PerpetualNotification:
    """Perpetual funding update."""
    timestamp: int
    interest: float
    index_price: float

    @classmethod
    def from_payload(cls, data: dict) -> "PerpetualNotification":
        """Create PerpetualNotification from notification data."""
        return cls(
            timestamp=int(data["timestamp"]),
            interest=float(data["interest"]),
            index_price=float(data["index_price"]),
        )


# =============================================================================
# Market Data
# =============================================================================

@dataclass
class QuoteNotification:
    """Best bid/ask update.

    Attributes:
        instrument_name: Instrument
        timestamp: Server time in ms
        best_bid_price: Best bid price (None when the side is empty)
        best_bid_amount: Best bid amount
        best_ask_price: Best ask price (None when the side is empty)
        best_ask_amount: Best ask amount
    """
    instrument_name: str
    timestamp: int
    best_bid_price: Optional[float]
    best_bid_amount: float
    best_ask_price: Optional[float]
    best_ask_amount: float

    @classmethod
    def from_payload(cls, data: dict) -> "QuoteNotification":
        """Create QuoteNotification from notification data."""
        return cls(
            instrument_name=str(data["instrument_name"]),
            timestamp=int(data["timestamp"]),
            best_bid_price=_optional_float(data.get("best_bid_price")),
            best_bid_amount=float(data.get("best_bid_amount", 0)),
            best_ask_price=_optional_float(data.get("best_ask_price")),
            best_ask_amount=float(data.get("best_ask_amount", 0)),
        )

    @property
    def spread(self) -> Optional[float]:
        """Get bid-ask spread."""
        if self.best_bid_price is None or self.best_ask_price is None:
            return None
        return self.best_ask_price - self.best_bid_price

    @property
    def mid_price(self) -> Optional[float]:
        """Get mid price."""
        if self.best_bid_price is None or self.best_ask_price is None:
            return None
        return (self.best_bid_price + self.best_ask_price) / 2


@dataclass
class TickerNotification:
    """Instrument ticker.

    Attributes:
        instrument_name: Instrument
        timestamp: Server time in ms
        state: Order book state ("open", "closed")
        last_price: Last trade price
        mark_price: Mark price
        index_price: Index price
        best_bid_price: Best bid price
        best_bid_amount: Best bid amount
        best_ask_price: Best ask price
        best_ask_amount: Best ask amount
        open_interest: Open interest
        min_price: Minimum allowed order price
        max_price: Maximum allowed order price
        settlement_price: Last settlement price
        current_funding: Current funding (perpetuals)
        funding_8h: 8h funding (perpetuals)
        estimated_delivery_price: Estimated delivery price
        stats: 24h statistics as sent by the server
    """
    instrument_name: str
    timestamp: int
    state: str
    last_price: Optional[float]
    mark_price: float
    index_price: Optional[float] = None
    best_bid_price: Optional[float] = None
    best_bid_amount: float = 0.0
    best_ask_price: Optional[float] = None
    best_ask_amount: float = 0.0
    open_interest: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    settlement_price: Optional[float] = None
    current_funding: Optional[float] = None
    funding_8h: Optional[float] = None
    estimated_delivery_price: Optional[float] = None
    stats: dict = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: dict) -> "TickerNotification":
        """Create TickerNotification from notification data."""
        return cls(
            instrument_name=str(data["instrument_name"]),
            timestamp=int(data["timestamp"]),
            state=str(data.get("state", "")),
            last_price=_optional_float(data.get("last_price")),
            mark_price=float(data["mark_price"]),
            index_price=_optional_float(data.get("index_price")),
            best_bid_price=_optional_float(data.get("best_bid_price")),
            best_bid_amount=float(data.get("best_bid_amount", 0)),
            best_ask_price=_optional_float(data.get("best_ask_price")),
            best_ask_amount=float(data.get("best_ask_amount", 0)),
            open_interest=_optional_float(data.get("open_interest")),
            min_price=_optional_float(data.get("min_price")),
            max_price=_optional_float(data.get("max_price")),
            settlement_price=_optional_float(data.get("settlement_price")),
            current_funding=_optional_float(data.get("current_funding")),
            funding_8h=_optional_float(data.get("funding_8h")),
            estimated_delivery_price=_optional_float(data.get("estimated_delivery_price")),
            stats=dict(data.get("stats") or {}),
        )


@dataclass
class Trade:
    """Public trade.

    Attributes:
        trade_id: Trade id
        trade_seq: Sequence number within the instrument
        instrument_name: Instrument
        timestamp: Trade time in ms
        price: Trade price
        amount: Trade amount
        direction: "buy" or "sell" (taker side)
        tick_direction: 0-3 tick direction code
        mark_price: Mark price at the trade
        index_price: Index price at the trade
        iv: Implied volatility (options only)
        liquidation: Liquidation marker ("M", "T", "MT") if any
        block_trade_id: Block trade id if any
    """
    trade_id: str
    trade_seq: int
    instrument_name: str
    timestamp: int
    price: float
    amount: float
    direction: str
    tick_direction: int = 0
    mark_price: Optional[float] = None
    index_price: Optional[float] = None
    iv: Optional[float] = None
    liquidation: Optional[str] = None
    block_trade_id: Optional[str] = None

    @classmethod
    def from_payload(cls, data: dict) -> "Trade":
        """Create Trade from one trades member."""
        return cls(
            trade_id=str(data["trade_id"]),
            trade_seq=int(data["trade_seq"]),
            instrument_name=str(data["instrument_name"]),
            timestamp=int(data["timestamp"]),
            price=float(data["price"]),
            amount=float(data["amount"]),
            direction=str(data["direction"]),
            tick_direction=int(data.get("tick_direction", 0)),
            mark_price=_optional_float(data.get("mark_price")),
            index_price=_optional_float(data.get("index_price")),
            iv=_optional_float(data.get("iv")),
            liquidation=data.get("liquidation"),
            block_trade_id=data.get("block_trade_id"),
        )


def decode_trades(data: Any) -> list[Trade]:
    """trades payloads are arrays."""
    return [Trade.from_payload(entry) for entry in _require_list(data)]


# =============================================================================
# User (private) Data
# =============================================================================

@dataclass
class Order:
    """Order state.

    Attributes:
        order_id: Order id
        instrument_name: Instrument
        order_state: "open", "filled", "rejected", "cancelled", "untriggered"
        order_type: "limit", "market", "stop_limit", ...
        direction: "buy" or "sell"
        amount: Order amount
        filled_amount: Filled amount
        price: Limit price (None for market orders)
        average_price: Average fill price
        label: User label
        time_in_force: Time in force
        post_only: Post-only flag
        reduce_only: Reduce-only flag
        creation_timestamp: Creation time in ms
        last_update_timestamp: Last update time in ms
    """
    order_id: str
    instrument_name: str
    order_state: str
    order_type: str
    direction: str
    amount: float
    filled_amount: float = 0.0
    price: Optional[float] = None
    average_price: Optional[float] = None
    label: str = ""
    time_in_force: str = ""
    post_only: bool = False
    reduce_only: bool = False
    creation_timestamp: Optional[int] = None
    last_update_timestamp: Optional[int] = None

    @classmethod
    def from_payload(cls, data: dict) -> "Order":
        """Create Order from an order object."""
        return cls(
            order_id=str(data["order_id"]),
            instrument_name=str(data["instrument_name"]),
            order_state=str(data["order_state"]),
            order_type=str(data.get("order_type", "")),
            direction=str(data["direction"]),
            amount=float(data["amount"]),
            filled_amount=float(data.get("filled_amount", 0)),
            # "market_price" for market orders
            price=_optional_float(data.get("price")),
            average_price=_optional_float(data.get("average_price")),
            label=str(data.get("label", "")),
            time_in_force=str(data.get("time_in_force", "")),
            post_only=bool(data.get("post_only", False)),
            reduce_only=bool(data.get("reduce_only", False)),
            creation_timestamp=data.get("creation_timestamp"),
            last_update_timestamp=data.get("last_update_timestamp"),
        )

    @property
    def is_open(self) -> bool:
        return self.order_state in ("open", "untriggered")


def decode_user_orders(data: Any) -> list[Order]:
    """user.orders sends a single object per order, or an array when batched."""
    if isinstance(data, dict):
        return [Order.from_payload(data)]
    return [Order.from_payload(entry) for entry in _require_list(data)]


@dataclass
class UserTrade:
    """Fill of one of the user's orders.

    Attributes:
        trade_id: Trade id
        order_id: Order that was filled
        instrument_name: Instrument
        timestamp: Fill time in ms
        price: Fill price
        amount: Fill amount
        direction: "buy" or "sell"
        fee: Fee charged
        fee_currency: Fee currency
        state: Order state after the fill
        liquidity: "M" (maker) or "T" (taker)
        order_type: Order type
        trade_seq: Sequence number within the instrument
        mark_price: Mark price at the fill
        index_price: Index price at the fill
        label: User label of the order
    """
    trade_id: str
    order_id: str
    instrument_name: str
    timestamp: int
    price: float
    amount: float
    direction: str
    fee: float = 0.0
    fee_currency: str = ""
    state: str = ""
    liquidity: str = ""
    order_type: str = ""
    trade_seq: Optional[int] = None
    mark_price: Optional[float] = None
    index_price: Optional[float] = None
    label: str = ""

    @classmethod
    def from_payload(cls, data: dict) -> "UserTrade":
        """Create UserTrade from a user trade object."""
        return cls(
            trade_id=str(data["trade_id"]),
            order_id=str(data["order_id"]),
            instrument_name=str(data["instrument_name"]),
            timestamp=int(data["timestamp"]),
            price=float(data["price"]),
            amount=float(data["amount"]),
            direction=str(data["direction"]),
            fee=float(data.get("fee", 0)),
            fee_currency=str(data.get("fee_currency", "")),
            state=str(data.get("state", "")),
            liquidity=str(data.get("liquidity", "")),
            order_type=str(data.get("order_type", "")),
            trade_seq=data.get("trade_seq"),
            mark_price=_optional_float(data.get("mark_price")),
            index_price=_optional_float(data.get("index_price")),
            label=str(data.get("label", "")),
        )


def decode_user_trades(data: Any) -> list[UserTrade]:
    """user.trades payloads are arrays."""
    return [UserTrade.from_payload(entry) for entry in _require_list(data)]


@dataclass
class Position:
    """Open position.

    Attributes:
        instrument_name: Instrument
        kind: "future", "option", ...
        direction: "buy", "sell" or "zero"
        size: Position size (negative when short)
        average_price: Average entry price
        mark_price: Current mark price
        index_price: Current index price
        floating_profit_loss: Unrealized P&L
        realized_profit_loss: Realized P&L
        total_profit_loss: Total P&L
        delta: Position delta
        leverage: Leverage (futures only)
    """
    instrument_name: str
    kind: str
    direction: str
    size: float
    average_price: float = 0.0
    mark_price: Optional[float] = None
    index_price: Optional[float] = None
    floating_profit_loss: float = 0.0
    realized_profit_loss: float = 0.0
    total_profit_loss: float = 0.0
    delta: Optional[float] = None
    leverage: Optional[float] = None

    @classmethod
    def from_payload(cls, data: dict) -> "Position":
        """Create Position from a position object."""
        return cls(
            instrument_name=str(data["instrument_name"]),
            kind=str(data.get("kind", "")),
            direction=str(data.get("direction", "zero")),
            size=float(data["size"]),
            average_price=float(data.get("average_price", 0)),
            mark_price=_optional_float(data.get("mark_price")),
            index_price=_optional_float(data.get("index_price")),
            floating_profit_loss=float(data.get("floating_profit_loss", 0)),
            realized_profit_loss=float(data.get("realized_profit_loss", 0)),
            total_profit_loss=float(data.get("total_profit_loss", 0)),
            delta=_optional_float(data.get("delta")),
            leverage=_optional_float(data.get("leverage")),
        )


@dataclass
class UserChangesNotification:
    """Combined trades, positions and orders changed by one event."""
    instrument_name: str = ""
    trades: list[UserTrade] = field(default_factory=list)
    positions: list[Position] = field(default_factory=list)
    orders: list[Order] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict) -> "UserChangesNotification":
        """Create UserChangesNotification from notification data."""
        if not isinstance(data, dict):
            raise TypeError(f"expected an object payload, got {type(data).__name__}")
        return cls(
            instrument_name=str(data.get("instrument_name", "")),
            trades=[UserTrade.from_payload(t) for t in data.get("trades") or []],
            positions=[Position.from_payload(p) for p in data.get("positions") or []],
            orders=[Order.from_payload(o) for o in data.get("orders") or []],
        )


@dataclass
class PortfolioNotification:
    """Account summary for one currency."""
    currency: str
    balance: float
    equity: float
    available_funds: float
    available_withdrawal_funds: float = 0.0
    initial_margin: float = 0.0
    maintenance_margin: float = 0.0
    margin_balance: float = 0.0
    session_rpl: float = 0.0
    session_upl: float = 0.0
    total_pl: float = 0.0
    delta_total: float = 0.0

    @classmethod
    def from_payload(cls, data: dict) -> "PortfolioNotification":
        """Create PortfolioNotification from notification data."""
        return cls(
            currency=str(data["currency"]),
            balance=float(data["balance"]),
            equity=float(data["equity"]),
            available_funds=float(data["available_funds"]),
            available_withdrawal_funds=float(data.get("available_withdrawal_funds", 0)),
            initial_margin=float(data.get("initial_margin", 0)),
            maintenance_margin=float(data.get("maintenance_margin", 0)),
            margin_balance=float(data.get("margin_balance", 0)),
            session_rpl=float(data.get("session_rpl", 0)),
            session_upl=float(data.get("session_upl", 0)),
            total_pl=float(data.get("total_pl", 0)),
            delta_total=float(data.get("delta_total", 0)),
        )
