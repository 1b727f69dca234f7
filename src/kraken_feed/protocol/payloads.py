"""Payload typer.

Decodes the raw payload of an ``Envelope`` (or the ``data`` list of an
event-style account frame) into exactly one ``ChannelPayload`` variant.
Positional arrays are decoded by explicit per-arity functions, so each
field is named where it is read.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any

import msgspec

from kraken_feed.errors import SchemaMismatch, UnknownChannel
from kraken_feed.protocol.models import (
    AccountOrderUpdate,
    AccountTradeUpdate,
    Candle,
    ChannelPayload,
    ClosePrice,
    DecimalValues,
    Envelope,
    Event,
    IntValues,
    OpenOrder,
    OpenOrderDescr,
    OpenOrdersUpdate,
    OrderBookDelta,
    OrderBookSnapshot,
    OrderEvent,
    OrderEventKind,
    OwnTrade,
    PriceLevel,
    Spread,
    Ticker,
    TickerLevel,
    Trade,
    TradeList,
)
from kraken_feed.time import wire_time_to_unix

# Floats become Decimal from their exact textual form, no binary rounding.
_JSON_DECODER = msgspec.json.Decoder(float_hook=Decimal)

CONTROL_CHANNELS = frozenset({"heartbeat", "status", "pong"})

_SIDES = {"b": "buy", "s": "sell", "buy": "buy", "sell": "sell"}
_ORDER_TYPES = {"m": "market", "l": "limit", "market": "market", "limit": "limit"}


def channel_family(channel_name: str) -> str:
    """Strip the parameter suffix of a channel name, "book-10" -> "book"."""
    return channel_name.split("-", 1)[0]


# Field helpers


def _decimal(channel: str, value: Any, name: str) -> Decimal:
    if isinstance(value, bool):
        raise SchemaMismatch(channel, f"Invalid {name}; expected decimal but got bool")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (str, int)):
        try:
            result = Decimal(value)
        except InvalidOperation as exc:
            raise SchemaMismatch(
                channel, f"Invalid {name}; expected decimal but got {value!r}"
            ) from exc
    else:
        raise SchemaMismatch(
            channel, f"Invalid {name}; expected decimal but got {type(value).__name__}"
        )
    if not result.is_finite():
        raise SchemaMismatch(channel, f"Invalid {name}; expected finite but got {value!r}")
    return result


def _non_negative(channel: str, value: Any, name: str) -> Decimal:
    result = _decimal(channel, value, name)
    if result < 0:
        raise SchemaMismatch(channel, f"Invalid {name}; expected >=0 but got {result}")
    return result


def _int(channel: str, value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise SchemaMismatch(channel, f"Invalid {name}; expected integer but got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError as exc:
            raise SchemaMismatch(
                channel, f"Invalid {name}; expected integer but got {value!r}"
            ) from exc
    raise SchemaMismatch(
        channel, f"Invalid {name}; expected integer but got {type(value).__name__}"
    )


def _str(channel: str, value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise SchemaMismatch(
            channel, f"Invalid {name}; expected string but got {type(value).__name__}"
        )
    return value


def _time(channel: str, value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (str, int, Decimal)):
        raise SchemaMismatch(
            channel, f"Invalid {name}; expected timestamp but got {value!r}"
        )
    try:
        return wire_time_to_unix(value)
    except ValueError as exc:
        raise SchemaMismatch(
            channel, f"Invalid {name}; expected timestamp but got {value!r}"
        ) from exc


def _optional(
    parse: Callable[[str, Any, str], Any], channel: str, obj: dict, key: str
) -> Any:
    value = obj.get(key)
    if value is None or value == "":
        return None
    return parse(channel, value, key)


def _array(channel: str, value: Any, name: str, *arities: int) -> list:
    if not isinstance(value, list):
        raise SchemaMismatch(
            channel, f"Invalid {name}; expected array but got {type(value).__name__}"
        )
    if arities and len(value) not in arities:
        expected = " or ".join(str(arity) for arity in arities)
        raise SchemaMismatch(
            channel, f"Invalid {name}; expected {expected} elements but got {len(value)}"
        )
    return value


def _object(channel: str, value: Any, name: str) -> dict:
    if not isinstance(value, dict):
        raise SchemaMismatch(
            channel, f"Invalid {name}; expected object but got {type(value).__name__}"
        )
    return value


# Ticker


def _ticker_level(channel: str, value: Any, name: str) -> TickerLevel:
    price, whole_lot_volume, volume = _array(channel, value, name, 3)
    return TickerLevel(
        price=_decimal(channel, price, f"{name}.price"),
        whole_lot_volume=_int(channel, whole_lot_volume, f"{name}.whole_lot_volume"),
        volume=_decimal(channel, volume, f"{name}.volume"),
    )


def _close_price(channel: str, value: Any, name: str) -> ClosePrice:
    price, volume = _array(channel, value, name, 2)
    return ClosePrice(
        price=_decimal(channel, price, f"{name}.price"),
        volume=_decimal(channel, volume, f"{name}.volume"),
    )


def _decimal_values(channel: str, value: Any, name: str) -> DecimalValues:
    today, last_24h = _array(channel, value, name, 2)
    return DecimalValues(
        today=_decimal(channel, today, f"{name}.today"),
        last_24h=_decimal(channel, last_24h, f"{name}.last_24h"),
    )


def _int_values(channel: str, value: Any, name: str) -> IntValues:
    today, last_24h = _array(channel, value, name, 2)
    return IntValues(
        today=_int(channel, today, f"{name}.today"),
        last_24h=_int(channel, last_24h, f"{name}.last_24h"),
    )


def decode_ticker(channel: str, data: Any) -> Ticker:
    """Decode ``{"a": [...], "b": [...], "c": [...], ...}``."""
    obj = _object(channel, data, "ticker")
    return Ticker(
        ask=_optional(_ticker_level, channel, obj, "a"),
        bid=_optional(_ticker_level, channel, obj, "b"),
        close=_optional(_close_price, channel, obj, "c"),
        volume=_optional(_decimal_values, channel, obj, "v"),
        vwap=_optional(_decimal_values, channel, obj, "p"),
        trades=_optional(_int_values, channel, obj, "t"),
        low=_optional(_decimal_values, channel, obj, "l"),
        high=_optional(_decimal_values, channel, obj, "h"),
        open=_optional(_decimal_values, channel, obj, "o"),
    )


# Trades


def _trade(channel: str, value: Any) -> Trade:
    """``[price, volume, time, side, orderType, misc(, tradeId)]``."""
    entry = _array(channel, value, "trade", 6, 7)
    price, volume, time, side, order_type, misc = entry[:6]
    side = _str(channel, side, "side")
    order_type = _str(channel, order_type, "order type")
    return Trade(
        price=_non_negative(channel, price, "price"),
        volume=_non_negative(channel, volume, "volume"),
        time=_time(channel, time, "time"),
        side=_SIDES.get(side, side),
        order_type=_ORDER_TYPES.get(order_type, order_type),
        misc=_str(channel, misc, "misc"),
        trade_id=_int(channel, entry[6], "trade id") if len(entry) == 7 else None,
    )


def decode_trades(channel: str, data: Any) -> TradeList:
    """Decode an array of positional trades."""
    entries = _array(channel, data, "trades")
    return TradeList(trades=[_trade(channel, entry) for entry in entries])


def _trade_object(channel: str, value: Any) -> Trade:
    obj = _object(channel, value, "trade")
    side = _str(channel, obj.get("side"), "side")
    order_type = _str(channel, obj.get("ord_type"), "ord_type")
    return Trade(
        price=_non_negative(channel, obj.get("price"), "price"),
        volume=_non_negative(channel, obj.get("qty"), "qty"),
        time=_optional(_time, channel, obj, "timestamp"),
        side=_SIDES.get(side, side),
        order_type=_ORDER_TYPES.get(order_type, order_type),
        trade_id=_optional(_int, channel, obj, "trade_id"),
        symbol=_optional(_str, channel, obj, "symbol"),
    )


# Candles and spreads


def decode_candle(channel: str, data: Any) -> Candle:
    """Decode ``[time, etime, open, high, low, close, vwap, volume, count]``."""
    time, end_time, open_, high, low, close, vwap, volume, count = _array(
        channel, data, "candle", 9
    )
    return Candle(
        time=_time(channel, time, "time"),
        end_time=_time(channel, end_time, "end time"),
        open=_decimal(channel, open_, "open"),
        high=_decimal(channel, high, "high"),
        low=_decimal(channel, low, "low"),
        close=_decimal(channel, close, "close"),
        vwap=_decimal(channel, vwap, "vwap"),
        volume=_non_negative(channel, volume, "volume"),
        count=_int(channel, count, "count"),
    )


def decode_spread(channel: str, data: Any) -> Spread:
    """Decode ``[bid, ask, timestamp, bidVolume, askVolume]``."""
    bid, ask, time, bid_volume, ask_volume = _array(channel, data, "spread", 5)
    return Spread(
        bid=_decimal(channel, bid, "bid"),
        ask=_decimal(channel, ask, "ask"),
        time=_time(channel, time, "time"),
        bid_volume=_non_negative(channel, bid_volume, "bid volume"),
        ask_volume=_non_negative(channel, ask_volume, "ask volume"),
    )


# Books


def _snapshot_level(channel: str, value: Any) -> PriceLevel:
    """``[price, volume, timestamp]``."""
    price, volume, _ = _array(channel, value, "level", 3)
    return PriceLevel(
        price=_non_negative(channel, price, "price"),
        volume=_non_negative(channel, volume, "volume"),
    )


def _delta_event(channel: str, value: Any) -> OrderEvent:
    """``[price, volume, timestamp(, "r")]``, zero volume deletes the level."""
    entry = _array(channel, value, "level", 3, 4)
    price = _non_negative(channel, entry[0], "price")
    volume = _non_negative(channel, entry[1], "volume")
    return OrderEvent(
        kind=OrderEventKind.DELETE if volume == 0 else OrderEventKind.ADD,
        price=price,
        volume=volume,
        timestamp=_time(channel, entry[2], "timestamp"),
    )


def decode_book(channel: str, data: Any) -> OrderBookSnapshot | OrderBookDelta:
    """Decode a snapshot (``as``/``bs``) or a delta (``a``/``b``/``c``)."""
    obj = _object(channel, data, "book")

    if "as" in obj or "bs" in obj:
        return OrderBookSnapshot(
            bids=[_snapshot_level(channel, v) for v in _array(channel, obj.get("bs", []), "bs")],
            asks=[_snapshot_level(channel, v) for v in _array(channel, obj.get("as", []), "as")],
        )

    if "a" not in obj and "b" not in obj:
        raise SchemaMismatch(channel, "Invalid book payload; no snapshot or delta sides")

    return OrderBookDelta(
        bids=[_delta_event(channel, v) for v in _array(channel, obj.get("b", []), "b")],
        asks=[_delta_event(channel, v) for v in _array(channel, obj.get("a", []), "a")],
        checksum=_optional(_int, channel, obj, "c"),
    )


def _level3_event(channel: str, value: Any) -> OrderEvent:
    """``{event, order_id, limit_price, order_qty, timestamp}``; snapshot
    entries carry no ``event`` and are adds."""
    obj = _object(channel, value, "order event")
    raw_kind = obj.get("event", OrderEventKind.ADD.value)
    try:
        kind = OrderEventKind(raw_kind)
    except ValueError as exc:
        raise SchemaMismatch(channel, f"Invalid order event; got {raw_kind!r}") from exc
    return OrderEvent(
        kind=kind,
        price=_non_negative(channel, obj.get("limit_price"), "limit_price"),
        volume=_non_negative(channel, obj.get("order_qty", 0), "order_qty"),
        timestamp=_optional(_time, channel, obj, "timestamp"),
        order_id=_optional(_str, channel, obj, "order_id"),
    )


def decode_account_orders(channel: str, type_: str | None, data: list) -> AccountOrderUpdate:
    """Decode the first element of a level3 ``data`` list."""
    if type_ not in ("snapshot", "update"):
        raise SchemaMismatch(channel, f"Invalid type; expected snapshot or update but got {type_!r}")
    obj = _object(channel, data[0], "data[0]")
    is_snapshot = type_ == "snapshot" or obj.get("snapshot") is True
    return AccountOrderUpdate(
        symbol=_str(channel, obj.get("symbol"), "symbol"),
        bids=[_level3_event(channel, v) for v in _array(channel, obj.get("bids", []), "bids")],
        asks=[_level3_event(channel, v) for v in _array(channel, obj.get("asks", []), "asks")],
        checksum=_optional(_int, channel, obj, "checksum"),
        is_snapshot=is_snapshot,
    )


def decode_trade_event(channel: str, type_: str | None, data: list) -> TradeList:
    """Decode every element of an event-style trade ``data`` list."""
    return TradeList(trades=[_trade_object(channel, entry) for entry in data])


# Account channels


def _keyed_entries(channel: str, data: Any) -> list[tuple[str, dict]]:
    """Flatten ``[{id: {...}}, {id: {...}}]`` into ``(id, fields)`` pairs."""
    entries: list[tuple[str, dict]] = []
    for item in _array(channel, data, channel):
        for key, fields in _object(channel, item, "entry").items():
            entries.append((key, _object(channel, fields, key)))
    return entries


def decode_own_trades(channel: str, data: Any) -> AccountTradeUpdate:
    """Decode ``[{txid: {ordertxid, postxid, pair, time, ...}}, ...]``."""
    trades = []
    for trade_id, fields in _keyed_entries(channel, data):
        trades.append(
            OwnTrade(
                trade_id=trade_id,
                order_id=_optional(_str, channel, fields, "ordertxid"),
                position_id=_optional(_str, channel, fields, "postxid"),
                pair=_optional(_str, channel, fields, "pair"),
                time=_optional(_time, channel, fields, "time"),
                side=_optional(_str, channel, fields, "type"),
                order_type=_optional(_str, channel, fields, "ordertype"),
                price=_optional(_decimal, channel, fields, "price"),
                cost=_optional(_decimal, channel, fields, "cost"),
                fee=_optional(_decimal, channel, fields, "fee"),
                volume=_optional(_decimal, channel, fields, "vol"),
                margin=_optional(_decimal, channel, fields, "margin"),
                user_ref=_optional(_int, channel, fields, "userref"),
            )
        )
    return AccountTradeUpdate(trades=trades)


def _open_order_descr(channel: str, value: Any, name: str) -> OpenOrderDescr:
    fields = _object(channel, value, name)
    return OpenOrderDescr(
        pair=_optional(_str, channel, fields, "pair"),
        side=_optional(_str, channel, fields, "type"),
        order_type=_optional(_str, channel, fields, "ordertype"),
        price=_optional(_decimal, channel, fields, "price"),
        price2=_optional(_decimal, channel, fields, "price2"),
        leverage=_optional(_str, channel, fields, "leverage"),
        order=_optional(_str, channel, fields, "order"),
        close=_optional(_str, channel, fields, "close"),
    )


def decode_open_orders(channel: str, data: Any) -> OpenOrdersUpdate:
    """Decode ``[{txid: {status, vol, descr, ...}}, ...]``."""
    orders = []
    for order_id, fields in _keyed_entries(channel, data):
        orders.append(
            OpenOrder(
                order_id=order_id,
                status=_optional(_str, channel, fields, "status"),
                user_ref=_optional(_int, channel, fields, "userref"),
                open_time=_optional(_time, channel, fields, "opentm"),
                start_time=_optional(_time, channel, fields, "starttm"),
                expire_time=_optional(_time, channel, fields, "expiretm"),
                volume=_optional(_decimal, channel, fields, "vol"),
                volume_exec=_optional(_decimal, channel, fields, "vol_exec"),
                cost=_optional(_decimal, channel, fields, "cost"),
                fee=_optional(_decimal, channel, fields, "fee"),
                avg_price=_optional(_decimal, channel, fields, "avg_price"),
                stop_price=_optional(_decimal, channel, fields, "stopprice"),
                limit_price=_optional(_decimal, channel, fields, "limitprice"),
                misc=_optional(_str, channel, fields, "misc"),
                oflags=_optional(_str, channel, fields, "oflags"),
                descr=_optional(_open_order_descr, channel, fields, "descr"),
            )
        )
    return OpenOrdersUpdate(orders=orders)


_PAYLOAD_DECODERS: dict[str, Callable[[str, Any], ChannelPayload]] = {
    "ticker": decode_ticker,
    "trade": decode_trades,
    "ohlc": decode_candle,
    "spread": decode_spread,
    "book": decode_book,
    "ownTrades": decode_own_trades,
    "openOrders": decode_open_orders,
}

_EVENT_DECODERS: dict[str, Callable[[str, str | None, list], ChannelPayload]] = {
    "level3": decode_account_orders,
    "trade": decode_trade_event,
}


def _decode_json(channel: str, raw: bytes) -> Any:
    try:
        return _JSON_DECODER.decode(raw)
    except msgspec.DecodeError as exc:
        raise SchemaMismatch(channel, f"Invalid JSON payload ({exc})") from exc


def decode_payload(envelope: Envelope) -> ChannelPayload:
    """Decode an envelope's payload into its channel's variant.

    Args:
        envelope: Envelope produced by the frame decoder.

    Returns:
        ChannelPayload: The decoded variant.

    Raises:
        UnknownChannel: If no decoder exists for the channel.
        SchemaMismatch: If the payload does not fit the channel schema.
    """
    channel = envelope.channel_name
    decoder = _PAYLOAD_DECODERS.get(channel_family(channel))
    if decoder is None:
        raise UnknownChannel(channel)
    return decoder(channel, _decode_json(channel, envelope.payload))


def decode_event_payload(event: Event) -> ChannelPayload | None:
    """Decode the ``data`` list of an event-style channel frame.

    Returns None for control events (heartbeats, status, acks), which carry
    no channel payload.

    Raises:
        UnknownChannel: If the event names a channel with no decoder.
        SchemaMismatch: If ``data`` is missing, empty or malformed.
    """
    channel = event.channel
    if channel is None or channel in CONTROL_CHANNELS:
        return None
    decoder = _EVENT_DECODERS.get(channel)
    if decoder is None:
        raise UnknownChannel(channel)

    body = _object(channel, _decode_json(channel, event.raw), "event")
    data = body.get("data")
    if not isinstance(data, list) or not data:
        raise SchemaMismatch(channel, "Invalid event; expected non-empty data")
    return decoder(channel, event.type, data)
