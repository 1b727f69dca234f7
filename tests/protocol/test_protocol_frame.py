"""Tests for the frame decoder."""

import msgspec
import pytest

from kraken_feed.errors import MalformedFrame
from kraken_feed.protocol.frame import decode_frame, merge_depth_payloads
from kraken_feed.protocol.models import Envelope, Event


class TestPositionalFrames:
    """3, 4 and 5 element array frames."""

    def test_three_element_frame(self) -> None:
        frame = b'[{"a":["5525.4",0,"57.1"]}, "ticker", 101]'
        envelope = decode_frame(frame)

        assert isinstance(envelope, Envelope)
        assert envelope.channel_name == "ticker"
        assert envelope.sequence == 101
        assert envelope.channel_id is None
        assert envelope.pair is None
        assert msgspec.json.decode(envelope.payload) == {"a": ["5525.4", 0, "57.1"]}

    def test_three_element_frame_with_sequence_object(self) -> None:
        frame = b'[[{"T1":{"pair":"XBT/USD"}}], "ownTrades", {"sequence": 7}]'
        envelope = decode_frame(frame)

        assert envelope.channel_name == "ownTrades"
        assert envelope.sequence == 7

    def test_four_element_frame(self) -> None:
        frame = b'[340, {"a":["5525.4",0,"57.1"]}, "ticker", "XBT/USD"]'
        envelope = decode_frame(frame)

        assert envelope.channel_id == 340
        assert envelope.channel_name == "ticker"
        assert envelope.pair == "XBT/USD"
        assert envelope.sequence is None
        assert msgspec.json.decode(envelope.payload) == {"a": ["5525.4", 0, "57.1"]}

    def test_payload_bytes_are_untouched(self) -> None:
        frame = b'[340, {"a":["5525.40000",0,"57.10"]}, "ticker", "XBT/USD"]'
        envelope = decode_frame(frame)

        assert envelope.payload == b'{"a":["5525.40000",0,"57.10"]}'

    def test_five_element_frame_merges_sides(self) -> None:
        frame = (
            b'[336, {"a":[["5541.3","0.12345","1534614248.1"]]},'
            b' {"b":[["5541.2","0.5","1534614248.2"]]}, "book-10", "XBT/USD"]'
        )
        envelope = decode_frame(frame)

        assert envelope.channel_id == 336
        assert envelope.channel_name == "book-10"
        assert envelope.pair == "XBT/USD"
        assert msgspec.json.decode(envelope.payload) == {
            "a": [["5541.3", "0.12345", "1534614248.1"]],
            "b": [["5541.2", "0.5", "1534614248.2"]],
        }

    def test_str_input_accepted(self) -> None:
        envelope = decode_frame('[1, {"a":[]}, "book-10", "XBT/USD"]')
        assert envelope.channel_id == 1

    @pytest.mark.parametrize(
        "frame",
        [
            b"[]",
            b'["ticker"]',
            b'[{"a":1}, "ticker"]',
            b'[1, {}, {}, "book-10", "XBT/USD", "extra"]',
        ],
    )
    def test_wrong_length_rejected(self, frame: bytes) -> None:
        with pytest.raises(MalformedFrame):
            decode_frame(frame)

    def test_non_string_channel_name_rejected(self) -> None:
        with pytest.raises(MalformedFrame):
            decode_frame(b'[340, {"a":[]}, 5, "XBT/USD"]')

    def test_non_integer_channel_id_rejected(self) -> None:
        with pytest.raises(MalformedFrame) as exc_info:
            decode_frame(b'["340", {"a":[]}, "ticker", "XBT/USD"]')
        assert exc_info.value.frame is not None

    def test_bool_sequence_rejected(self) -> None:
        with pytest.raises(MalformedFrame):
            decode_frame(b'[{"a":[]}, "ticker", true]')


class TestEventFrames:
    """Object-shaped frames."""

    def test_subscription_status(self) -> None:
        frame = (
            b'{"channelID":336,"channelName":"book-10","event":"subscriptionStatus",'
            b'"pair":"XBT/USD","status":"subscribed","subscription":{"depth":10,"name":"book"}}'
        )
        event = decode_frame(frame)

        assert isinstance(event, Event)
        assert event.event == "subscriptionStatus"
        assert event.channel_id == 336
        assert event.channel_name == "book-10"
        assert event.status == "subscribed"
        assert event.depth == 10
        assert event.symbol == "XBT/USD"
        assert event.subscribed_channel == "book-10"
        assert event.raw == frame

    def test_v2_subscribe_ack(self) -> None:
        frame = (
            b'{"method":"subscribe","result":{"channel":"level3","depth":10,'
            b'"snapshot":true,"symbol":"BTC/USD"},"success":true}'
        )
        event = decode_frame(frame)

        assert event.method == "subscribe"
        assert event.success is True
        assert event.depth == 10
        assert event.symbol == "BTC/USD"
        assert event.subscribed_channel == "level3"

    def test_heartbeat(self) -> None:
        event = decode_frame(b'{"event":"heartbeat"}')
        assert event.event == "heartbeat"
        assert event.channel is None

    def test_unknown_keys_ignored(self) -> None:
        event = decode_frame(b'{"event":"systemStatus","connectionID":1,"version":"1.9.0"}')
        assert event.event == "systemStatus"

    def test_invalid_json_rejected(self) -> None:
        with pytest.raises(MalformedFrame):
            decode_frame(b'{"event":')

    @pytest.mark.parametrize("frame", [b"", b"   ", b"42", b'"ticker"'])
    def test_non_container_rejected(self, frame: bytes) -> None:
        with pytest.raises(MalformedFrame):
            decode_frame(frame)


class TestDepthMerge:
    """Merging the ask and bid objects of a two-sided book update."""

    def test_merge_is_exact(self) -> None:
        merged = merge_depth_payloads(
            b'{"a":[["100.1","2","t"]]}', b'{"b":[["99.9","3","t"]]}'
        )
        assert merged == b'{"a":[["100.1","2","t"]],"b":[["99.9","3","t"]]}'

    def test_merge_keeps_checksum(self) -> None:
        merged = msgspec.json.decode(
            merge_depth_payloads(b'{"a":[]}', b'{"b":[],"c":"974942666"}')
        )
        assert merged == {"a": [], "b": [], "c": "974942666"}

    def test_overlapping_keys_rejected(self) -> None:
        with pytest.raises(MalformedFrame):
            merge_depth_payloads(b'{"a":[]}', b'{"a":[],"b":[]}')

    def test_non_object_rejected(self) -> None:
        with pytest.raises(MalformedFrame):
            merge_depth_payloads(b'[1,2]', b'{"b":[]}')

    def test_decoding_is_idempotent(self) -> None:
        frame = (
            b'[336, {"a":[["5541.3","0.12345","1534614248.1"]]},'
            b' {"b":[["5541.2","0.5","1534614248.2"]],"c":"12"}, "book-10", "XBT/USD"]'
        )
        assert decode_frame(frame) == decode_frame(frame)
