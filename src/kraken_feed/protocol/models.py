"""Typed models for decoded frames and channel payloads.

Every payload variant is a tagged ``msgspec.Struct`` sharing the ``kind``
tag field, so ``ChannelPayload`` is a closed union that consumers can
``match`` on (or re-encode) without inspecting raw JSON.
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Any

from msgspec import Struct, field


class PayloadKind(StrEnum):
    """Discriminator values of the ChannelPayload variants."""

    TICKER = "ticker"
    TRADE = "trade"
    CANDLE = "candle"
    SPREAD = "spread"
    BOOK_SNAPSHOT = "book_snapshot"
    BOOK_DELTA = "book_delta"
    ACCOUNT_ORDERS = "account_orders"
    ACCOUNT_TRADES = "account_trades"
    OPEN_ORDERS = "open_orders"


class Envelope(Struct):
    """Positional market-data frame with its payload left undecoded.

    Attributes:
        payload: Raw JSON bytes of the payload element.
        channel_name: Channel name, e.g. "book-10" or "ticker".
        channel_id: Numeric channel id (4-tuple frames only).
        pair: Pair the payload belongs to (4-tuple frames only).
        sequence: Sequence number (3-tuple frames only).
    """

    payload: bytes
    channel_name: str
    channel_id: int | None = None
    pair: str | None = None
    sequence: int | None = None


class Event(Struct):
    """Object-shaped frame: subscription acks, status, errors and the
    event-style account channels.

    Only routing metadata is decoded here, ``raw`` keeps the whole frame so
    the account ``data`` list can be typed later.
    """

    event: str | None = None
    channel: str | None = None
    type: str | None = None
    status: str | None = None
    channel_name: str | None = field(default=None, name="channelName")
    pair: str | None = None
    channel_id: int | None = field(default=None, name="channelID")
    error_message: str | None = field(default=None, name="errorMessage")
    method: str | None = None
    success: bool | None = None
    error: str | None = None
    subscription: dict[str, Any] | None = None
    result: dict[str, Any] | None = None
    raw: bytes = b""

    @property
    def depth(self) -> int | None:
        """Book depth acknowledged by a subscription, if any."""
        for source in (self.subscription, self.result):
            if source is not None and isinstance(source.get("depth"), int):
                return source["depth"]
        return None

    @property
    def symbol(self) -> str | None:
        """Symbol of the subscription (v1 ``pair`` or v2 ``result.symbol``)."""
        if self.pair is not None:
            return self.pair
        if self.result is not None and isinstance(self.result.get("symbol"), str):
            return self.result["symbol"]
        return None

    @property
    def subscribed_channel(self) -> str | None:
        """Channel the subscription ack refers to."""
        if self.channel_name is not None:
            return self.channel_name
        if self.subscription is not None and isinstance(self.subscription.get("name"), str):
            return self.subscription["name"]
        if self.result is not None and isinstance(self.result.get("channel"), str):
            return self.result["channel"]
        return None


class PriceLevel(Struct, frozen=True):
    """Single price level of one book side."""

    price: Decimal
    volume: Decimal

    def __post_init__(self) -> None:
        """Validate level values."""
        if self.price < 0:
            raise ValueError(f"Invalid price; expected >=0 but got {self.price}")
        if self.volume < 0:
            raise ValueError(f"Invalid volume; expected >=0 but got {self.volume}")

    @property
    def value(self) -> Decimal:
        """Returns the notional value of the level."""
        return self.price * self.volume


class OrderEventKind(StrEnum):
    """Kinds of book mutation."""

    ADD = "add"
    MODIFY = "modify"
    DELETE = "delete"


class OrderEvent(Struct, frozen=True):
    """A single book mutation.

    Attributes:
        kind: Add, modify or delete.
        price: Price level affected.
        volume: New volume at the level (ignored for deletes).
        timestamp: Exchange time in unix seconds, when supplied.
        order_id: Order id for level3 events.
    """

    kind: OrderEventKind
    price: Decimal
    volume: Decimal
    timestamp: float | None = None
    order_id: str | None = None


class TickerLevel(Struct):
    """Best ask or bid of a ticker: ``[price, wholeLotVolume, lotVolume]``."""

    price: Decimal
    whole_lot_volume: int
    volume: Decimal


class ClosePrice(Struct):
    """Last trade of a ticker: ``[price, lotVolume]``."""

    price: Decimal
    volume: Decimal


class DecimalValues(Struct):
    """Ticker statistic for today and the last 24 hours."""

    today: Decimal
    last_24h: Decimal


class IntValues(Struct):
    """Integer ticker statistic for today and the last 24 hours."""

    today: int
    last_24h: int


class ChannelPayload(Struct, tag_field="kind"):
    """Base of every decoded payload variant."""


class Ticker(ChannelPayload, tag=PayloadKind.TICKER.value):
    """Ticker update. Fields missing from the wire object stay None."""

    ask: TickerLevel | None = None
    bid: TickerLevel | None = None
    close: ClosePrice | None = None
    volume: DecimalValues | None = None
    vwap: DecimalValues | None = None
    trades: IntValues | None = None
    low: DecimalValues | None = None
    high: DecimalValues | None = None
    open: DecimalValues | None = None


class Trade(Struct):
    """Public trade.

    Attributes:
        price: Trade price.
        volume: Trade volume.
        time: Trade time in unix seconds.
        side: "buy" or "sell".
        order_type: "market" or "limit".
        misc: Miscellaneous info (v1 only).
        trade_id: Exchange trade id when supplied.
        symbol: Symbol when supplied by the event-style channel.
    """

    price: Decimal
    volume: Decimal
    time: float | None
    side: str
    order_type: str
    misc: str = ""
    trade_id: int | None = None
    symbol: str | None = None


class TradeList(ChannelPayload, tag=PayloadKind.TRADE.value):
    """Batch of trades from one frame, in wire order."""

    trades: list[Trade]


class Candle(ChannelPayload, tag=PayloadKind.CANDLE.value):
    """OHLC candle: ``[time, etime, open, high, low, close, vwap, volume, count]``."""

    time: float
    end_time: float
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    vwap: Decimal
    volume: Decimal
    count: int


class Spread(ChannelPayload, tag=PayloadKind.SPREAD.value):
    """Spread: ``[bid, ask, timestamp, bidVolume, askVolume]``."""

    bid: Decimal
    ask: Decimal
    time: float
    bid_volume: Decimal
    ask_volume: Decimal


class OrderBookSnapshot(ChannelPayload, tag=PayloadKind.BOOK_SNAPSHOT.value):
    """Full book replacement, bids best first, asks best first."""

    bids: list[PriceLevel]
    asks: list[PriceLevel]


class OrderBookDelta(ChannelPayload, tag=PayloadKind.BOOK_DELTA.value):
    """Incremental book update, with the server checksum when supplied."""

    bids: list[OrderEvent]
    asks: list[OrderEvent]
    checksum: int | None = None


class AccountOrderUpdate(ChannelPayload, tag=PayloadKind.ACCOUNT_ORDERS.value):
    """Level3 order book update from the event-style channel."""

    symbol: str
    bids: list[OrderEvent]
    asks: list[OrderEvent]
    checksum: int | None = None
    is_snapshot: bool = False


class OwnTrade(Struct):
    """One of the account's own trades."""

    trade_id: str
    order_id: str | None = None
    position_id: str | None = None
    pair: str | None = None
    time: float | None = None
    side: str | None = None
    order_type: str | None = None
    price: Decimal | None = None
    cost: Decimal | None = None
    fee: Decimal | None = None
    volume: Decimal | None = None
    margin: Decimal | None = None
    user_ref: int | None = None


class AccountTradeUpdate(ChannelPayload, tag=PayloadKind.ACCOUNT_TRADES.value):
    """Own trades delivered by one frame."""

    trades: list[OwnTrade]


class OpenOrderDescr(Struct):
    """Order description of an open order."""

    pair: str | None = None
    side: str | None = None
    order_type: str | None = None
    price: Decimal | None = None
    price2: Decimal | None = None
    leverage: str | None = None
    order: str | None = None
    close: str | None = None


class OpenOrder(Struct):
    """State of one open order. Updates usually carry only changed fields."""

    order_id: str
    status: str | None = None
    user_ref: int | None = None
    open_time: float | None = None
    start_time: float | None = None
    expire_time: float | None = None
    volume: Decimal | None = None
    volume_exec: Decimal | None = None
    cost: Decimal | None = None
    fee: Decimal | None = None
    avg_price: Decimal | None = None
    stop_price: Decimal | None = None
    limit_price: Decimal | None = None
    misc: str | None = None
    oflags: str | None = None
    descr: OpenOrderDescr | None = None


class OpenOrdersUpdate(ChannelPayload, tag=PayloadKind.OPEN_ORDERS.value):
    """Open order states delivered by one frame."""

    orders: list[OpenOrder]


AnyChannelPayload = (
    Ticker
    | TradeList
    | Candle
    | Spread
    | OrderBookSnapshot
    | OrderBookDelta
    | AccountOrderUpdate
    | AccountTradeUpdate
    | OpenOrdersUpdate
)


def kind_of(payload: ChannelPayload) -> PayloadKind:
    """Return the discriminator of a payload variant."""
    return PayloadKind(type(payload).__struct_config__.tag)


class Update(Struct):
    """A decoded payload with the routing metadata of its frame.

    Attributes:
        kind: Payload discriminator.
        channel_name: Channel the frame arrived on.
        data: Decoded payload.
        pair: Pair or symbol, when known.
        sequence: Sequence number, when the frame carries one.
        channel_id: Numeric channel id, when the frame carries one.
    """

    kind: PayloadKind
    channel_name: str
    data: AnyChannelPayload
    pair: str | None = None
    sequence: int | None = None
    channel_id: int | None = None
