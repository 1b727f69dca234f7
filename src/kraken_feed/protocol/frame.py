"""Frame decoder.

Turns one raw inbound frame into either an ``Event`` (object-shaped frame)
or an ``Envelope`` (positional array frame). Array frames come in three
shapes::

    [payload, channelName, sequence]                      # 3 elements
    [channelID, payload, channelName, pair]               # 4 elements
    [channelID, askPayload, bidPayload, channelName, pair] # 5 elements

The 5 element shape only occurs for book updates touching both sides; the
ask and bid objects carry disjoint keys and are merged into one object so
the frame can be decoded as a 4 element frame.
"""

from __future__ import annotations

import msgspec
from msgspec.structs import replace

from kraken_feed.errors import MalformedFrame
from kraken_feed.protocol.models import Envelope, Event

_EVENT_DECODER = msgspec.json.Decoder(Event)
_ARRAY_DECODER = msgspec.json.Decoder(list[msgspec.Raw])
_OBJECT_DECODER = msgspec.json.Decoder(dict[str, msgspec.Raw])
_ANY_DECODER = msgspec.json.Decoder()
_ENCODER = msgspec.json.Encoder()


def _as_bytes(raw: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(raw, str):
        return raw.encode()
    return bytes(raw)


def merge_depth_payloads(
    ask: bytes | msgspec.Raw, bid: bytes | msgspec.Raw
) -> bytes:
    """Merge the ask and bid objects of a two-sided book update.

    Both inputs are parsed independently and combined into one object; the
    values are carried through untouched, so the merged bytes hold exactly
    the digits received.

    Args:
        ask: Raw JSON of the ask object, e.g. ``{"a":[...]}``.
        bid: Raw JSON of the bid object, e.g. ``{"b":[...],"c":"..."}``.

    Returns:
        bytes: The merged JSON object.

    Raises:
        MalformedFrame: If either side is not a JSON object or the two
            objects share a key.
    """
    try:
        ask_obj = _OBJECT_DECODER.decode(_as_bytes(ask))
        bid_obj = _OBJECT_DECODER.decode(_as_bytes(bid))
    except msgspec.DecodeError as exc:
        raise MalformedFrame(
            f"Invalid depth update; expected ask and bid JSON objects ({exc})"
        ) from exc

    overlap = ask_obj.keys() & bid_obj.keys()
    if overlap:
        raise MalformedFrame(
            f"Invalid depth update; ask and bid objects share keys {sorted(overlap)}"
        )

    merged = dict(ask_obj)
    merged.update(bid_obj)
    return _ENCODER.encode(merged)


def _decode_element(element: msgspec.Raw, frame: bytes) -> object:
    try:
        return _ANY_DECODER.decode(_as_bytes(element))
    except msgspec.DecodeError as exc:
        raise MalformedFrame(f"Invalid frame element ({exc})", frame) from exc


def _decode_str(element: msgspec.Raw, name: str, frame: bytes) -> str:
    value = _decode_element(element, frame)
    if not isinstance(value, str):
        raise MalformedFrame(
            f"Invalid {name}; expected string but got {type(value).__name__}", frame
        )
    return value


def _decode_int(element: msgspec.Raw, name: str, frame: bytes) -> int:
    value = _decode_element(element, frame)
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedFrame(
            f"Invalid {name}; expected integer but got {type(value).__name__}", frame
        )
    return value


def _decode_sequence(element: msgspec.Raw, frame: bytes) -> int:
    """Sequence is a bare integer or ``{"sequence": n}`` on private channels."""
    value = _decode_element(element, frame)
    if isinstance(value, dict):
        value = value.get("sequence")
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedFrame(f"Invalid sequence; got {value!r}", frame)
    return value


def _decode_event(data: bytes) -> Event:
    try:
        event = _EVENT_DECODER.decode(data)
    except msgspec.DecodeError as exc:
        raise MalformedFrame(f"Invalid event frame ({exc})", data) from exc
    return replace(event, raw=data)


def _decode_array(data: bytes) -> Envelope:
    try:
        elements = _ARRAY_DECODER.decode(data)
    except msgspec.DecodeError as exc:
        raise MalformedFrame(f"Invalid array frame ({exc})", data) from exc

    num_elements = len(elements)
    if num_elements < 3:
        raise MalformedFrame(
            f"Invalid frame length; expected >=3 elements but got {num_elements}", data
        )
    if num_elements > 5:
        raise MalformedFrame(
            f"Invalid frame length; expected <=5 elements but got {num_elements}", data
        )

    if num_elements == 3:
        return Envelope(
            payload=_as_bytes(elements[0]),
            channel_name=_decode_str(elements[1], "channel name", data),
            sequence=_decode_sequence(elements[2], data),
        )

    if num_elements == 5:
        try:
            payload = merge_depth_payloads(elements[1], elements[2])
        except MalformedFrame as exc:
            raise MalformedFrame(exc.reason, data) from exc
        channel_name_raw, pair_raw = elements[3], elements[4]
    else:
        payload = _as_bytes(elements[1])
        channel_name_raw, pair_raw = elements[2], elements[3]

    return Envelope(
        payload=payload,
        channel_name=_decode_str(channel_name_raw, "channel name", data),
        channel_id=_decode_int(elements[0], "channel id", data),
        pair=_decode_str(pair_raw, "pair", data),
    )


def decode_frame(raw: bytes | bytearray | memoryview | str) -> Event | Envelope:
    """Decode one raw frame.

    Args:
        raw: Frame as received from the transport.

    Returns:
        Event | Envelope: ``Event`` for object frames, ``Envelope`` for
            positional array frames.

    Raises:
        MalformedFrame: If the frame matches no known shape.
    """
    data = _as_bytes(raw)
    head = data.lstrip()[:1]
    if head == b"{":
        return _decode_event(data)
    if head == b"[":
        return _decode_array(data)
    raise MalformedFrame("Invalid frame; expected a JSON object or array", data)
