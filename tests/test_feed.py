"""Tests for the feed processor."""

import asyncio
from decimal import Decimal

import pytest

from kraken_feed.bus import UpdateBus
from kraken_feed.config import FeedConfig
from kraken_feed.errors import (
    ChecksumMismatch,
    FeedError,
    MalformedFrame,
    SchemaMismatch,
    SubscriptionRejected,
    TransportClosed,
    TransportError,
    UnknownChannel,
)
from kraken_feed.feed import FeedProcessor, channel_depth
from kraken_feed.orderbook import ReplicaState
from kraken_feed.protocol.models import PayloadKind, PriceLevel

SUBSCRIBED = (
    b'{"channelID":336,"channelName":"book-10","event":"subscriptionStatus",'
    b'"pair":"XBT/USD","status":"subscribed","subscription":{"depth":10,"name":"book"}}'
)
SNAPSHOT = (
    b'[336, {"as":[["5541.30000","2.50700000","1534614248.123678"]],'
    b'"bs":[["5541.20000","1.52900000","1534614248.765567"]]}, "book-10", "XBT/USD"]'
)
DELTA = (
    b'[336, {"b":[["5541.10000","0.50000000","1534614248.9"]]}, "book-10", "XBT/USD"]'
)


class FakeTransport:
    """In-memory transport replaying a fixed list of frames."""

    def __init__(self, frames: list[bytes] | None = None, error: Exception | None = None) -> None:
        self.frames = list(frames or [])
        self.error = error
        self.sent: list[bytes | str] = []
        self.closed = False

    async def send(self, payload: bytes | str) -> None:
        self.sent.append(payload)

    async def receive(self) -> bytes:
        if self.frames:
            return self.frames.pop(0)
        if self.error is not None:
            raise self.error
        raise TransportClosed("done")

    async def close(self) -> None:
        self.closed = True


def make_processor(**kwargs) -> tuple[FeedProcessor, list[FeedError], list[str]]:
    errors: list[FeedError] = []
    desyncs: list[str] = []
    processor = FeedProcessor(
        transport=kwargs.pop("transport", FakeTransport()),
        on_error=errors.append,
        on_desync=desyncs.append,
        **kwargs,
    )
    return processor, errors, desyncs


def test_channel_depth() -> None:
    assert channel_depth("book-25") == 25
    assert channel_depth("book") is None
    assert channel_depth("ohlc-x") is None
    assert channel_depth(None) is None


class TestProcessFrame:
    @pytest.mark.asyncio
    async def test_ticker_published(self) -> None:
        processor, errors, _ = make_processor()
        update = await processor.process_frame(
            b'[340, {"a":["5525.4",0,"57.1"]}, "ticker", "XBT/USD"]'
        )

        assert update.kind == PayloadKind.TICKER
        assert update.pair == "XBT/USD"
        assert update.channel_id == 340
        assert await processor.bus.next() == update
        assert errors == []

    @pytest.mark.asyncio
    async def test_sequence_carried(self) -> None:
        processor, _, _ = make_processor()
        update = await processor.process_frame(b'[{"a":["5525.4",0,"57.1"]}, "ticker", 101]')
        assert update.sequence == 101

    @pytest.mark.asyncio
    async def test_malformed_frame_reported(self) -> None:
        processor, errors, _ = make_processor()

        assert await processor.process_frame(b'[1]') is None
        assert isinstance(errors[0], MalformedFrame)
        assert processor.bus.qsize() == 0

    @pytest.mark.asyncio
    async def test_schema_mismatch_reported(self) -> None:
        processor, errors, _ = make_processor()

        assert await processor.process_frame(b'[0, ["1","2"], "spread", "XBT/USD"]') is None
        assert isinstance(errors[0], SchemaMismatch)

    @pytest.mark.asyncio
    async def test_unknown_channel_is_harmless(self) -> None:
        processor, errors, _ = make_processor()

        assert await processor.process_frame(b'[1, {"x":1}, "mystery", "XBT/USD"]') is None
        assert isinstance(errors[0], UnknownChannel)

        update = await processor.process_frame(
            b'[340, {"a":["5525.4",0,"57.1"]}, "ticker", "XBT/USD"]'
        )
        assert update is not None

    @pytest.mark.asyncio
    async def test_control_events_publish_nothing(self) -> None:
        processor, errors, _ = make_processor()

        assert await processor.process_frame(b'{"event":"heartbeat"}') is None
        assert await processor.process_frame(b'{"channel":"heartbeat"}') is None
        assert processor.bus.qsize() == 0
        assert errors == []


class TestBookFlow:
    @pytest.mark.asyncio
    async def test_subscribe_snapshot_delta(self) -> None:
        processor, errors, _ = make_processor()

        assert await processor.process_frame(SUBSCRIBED) is None
        replica = processor.replicas.get("XBT/USD")
        assert replica.state == ReplicaState.AWAITING_SNAPSHOT
        assert replica.depth == 10

        snapshot = await processor.process_frame(SNAPSHOT)
        assert snapshot.kind == PayloadKind.BOOK_SNAPSHOT
        assert replica.state == ReplicaState.LIVE

        delta = await processor.process_frame(DELTA)
        assert delta.kind == PayloadKind.BOOK_DELTA
        assert [lvl.price for lvl in replica.get_bids()] == [
            Decimal("5541.20000"),
            Decimal("5541.10000"),
        ]
        assert errors == []

    @pytest.mark.asyncio
    async def test_snapshot_without_subscription_creates_replica(self) -> None:
        processor, _, _ = make_processor()
        await processor.process_frame(SNAPSHOT)

        replica = processor.replicas.get("XBT/USD")
        assert replica.state == ReplicaState.LIVE
        assert replica.depth == 10

    @pytest.mark.asyncio
    async def test_delta_for_untracked_symbol_still_published(self) -> None:
        processor, errors, _ = make_processor()
        update = await processor.process_frame(DELTA)

        assert update is not None
        assert processor.replicas.get("XBT/USD") is None
        assert errors == []

    @pytest.mark.asyncio
    async def test_checksum_mismatch_desyncs_and_publishes(self) -> None:
        processor, errors, desyncs = make_processor()
        await processor.process_frame(SUBSCRIBED)
        await processor.process_frame(SNAPSHOT)

        update = await processor.process_frame(
            b'[336, {"b":[["5541.10000","0.5","1534614248.9"]],"c":"1"}, "book-10", "XBT/USD"]'
        )

        assert update is not None
        assert isinstance(errors[0], ChecksumMismatch)
        assert desyncs == ["XBT/USD"]
        assert processor.replicas.get("XBT/USD").state == ReplicaState.DESYNCED

        await processor.process_frame(SNAPSHOT)
        assert processor.replicas.get("XBT/USD").state == ReplicaState.LIVE

    @pytest.mark.asyncio
    async def test_matching_checksum_accepted(self) -> None:
        processor, errors, desyncs = make_processor()
        await processor.process_frame(SNAPSHOT)
        replica = processor.replicas.get("XBT/USD")

        shadow_config = FeedConfig()
        shadow, _, _ = make_processor(config=shadow_config)
        await shadow.process_frame(SNAPSHOT)
        await shadow.process_frame(DELTA)
        expected = shadow.replicas.get("XBT/USD").last_checksum

        frame = (
            b'[336, {"b":[["5541.10000","0.50000000","1534614248.9"]],"c":"'
            + str(expected).encode()
            + b'"}, "book-10", "XBT/USD"]'
        )
        await processor.process_frame(frame)

        assert replica.state == ReplicaState.LIVE
        assert errors == []
        assert desyncs == []

    @pytest.mark.asyncio
    async def test_unsubscribe_drops_replica(self) -> None:
        processor, _, _ = make_processor()
        await processor.process_frame(SUBSCRIBED)
        await processor.process_frame(
            b'{"channelID":336,"channelName":"book-10","event":"subscriptionStatus",'
            b'"pair":"XBT/USD","status":"unsubscribed","subscription":{"depth":10,"name":"book"}}'
        )
        assert processor.replicas.get("XBT/USD") is None

    @pytest.mark.asyncio
    async def test_rejected_subscription_reported(self) -> None:
        processor, errors, _ = make_processor()
        await processor.process_frame(
            b'{"errorMessage":"Subscription depth not supported","event":"subscriptionStatus",'
            b'"pair":"XBT/USD","status":"error","subscription":{"depth":42,"name":"book"}}'
        )

        assert isinstance(errors[0], SubscriptionRejected)
        assert errors[0].symbol == "XBT/USD"
        assert processor.replicas.get("XBT/USD") is None

    @pytest.mark.asyncio
    async def test_level3_flow(self) -> None:
        processor, errors, _ = make_processor()
        await processor.process_frame(
            b'{"method":"subscribe","result":{"channel":"level3","depth":10,'
            b'"snapshot":true,"symbol":"BTC/USD"},"success":true}'
        )
        assert processor.replicas.get("BTC/USD").state == ReplicaState.AWAITING_SNAPSHOT

        update = await processor.process_frame(
            b'{"channel":"level3","type":"snapshot","data":[{"symbol":"BTC/USD",'
            b'"bids":[{"order_id":"O1","limit_price":45283.5,"order_qty":0.1}],'
            b'"asks":[{"order_id":"O2","limit_price":45285.2,"order_qty":0.001}]}]}'
        )

        assert update.kind == PayloadKind.ACCOUNT_ORDERS
        assert update.pair == "BTC/USD"
        replica = processor.replicas.get("BTC/USD")
        assert replica.state == ReplicaState.LIVE
        assert replica.get_bbo()[0] == PriceLevel(
            price=Decimal("45283.5"), volume=Decimal("0.1")
        )
        assert errors == []


class TestRun:
    @pytest.mark.asyncio
    async def test_run_until_closed(self) -> None:
        transport = FakeTransport(
            frames=[
                b'[340, {"a":["5525.4",0,"57.1"]}, "ticker", "XBT/USD"]',
                b"garbage",
                b'[341, {"a":["5525.5",0,"57.1"]}, "ticker", "XBT/USD"]',
            ]
        )
        processor, errors, _ = make_processor(transport=transport)

        await asyncio.wait_for(processor.run(), timeout=1.0)

        received = [update.channel_id async for update in processor.bus]
        assert received == [340, 341]
        assert len(errors) == 1
        assert processor.bus.is_closed()
        assert not processor.is_running()

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self) -> None:
        transport = FakeTransport(error=TransportError("boom"))
        processor, _, _ = make_processor(transport=transport)

        with pytest.raises(TransportError):
            await processor.run()
        assert processor.bus.is_closed()

    @pytest.mark.asyncio
    async def test_transport_error_with_full_bus_and_no_consumer(self) -> None:
        transport = FakeTransport(
            frames=[b'[340, {"a":["5525.4",0,"57.1"]}, "ticker", "XBT/USD"]'],
            error=TransportError("socket reset"),
        )
        processor, _, _ = make_processor(transport=transport, bus=UpdateBus(capacity=1))

        with pytest.raises(TransportError, match="socket reset"):
            await asyncio.wait_for(processor.run(), timeout=1.0)

        assert processor.bus.is_closed()
        assert (await processor.bus.next()).channel_id == 340

    @pytest.mark.asyncio
    async def test_bounded_bus_backpressure(self) -> None:
        frames = [
            b'[%d, {"a":["5525.4",0,"57.1"]}, "ticker", "XBT/USD"]' % i for i in range(20)
        ]
        processor, _, _ = make_processor(
            transport=FakeTransport(frames=frames), bus=UpdateBus(capacity=2)
        )

        runner = asyncio.create_task(processor.run())
        received = [update.channel_id async for update in processor.bus]
        await asyncio.wait_for(runner, timeout=1.0)

        assert received == list(range(20))

    @pytest.mark.asyncio
    async def test_stop_closes_transport(self) -> None:
        transport = FakeTransport()
        processor, _, _ = make_processor(transport=transport)
        await processor.stop()
        assert transport.closed


class TestOrdering:
    @pytest.mark.asyncio
    async def test_sequences_delivered_in_order(self) -> None:
        frames = [
            b'[{"a":["5525.4",0,"57.1"]}, "ticker", %d]' % sequence
            for sequence in (3, 5, 8, 13, 21)
        ]
        processor, errors, _ = make_processor(transport=FakeTransport(frames=frames))

        await processor.run()

        received = [update.sequence async for update in processor.bus]
        assert received == [3, 5, 8, 13, 21]
        assert errors == []

    @pytest.mark.asyncio
    async def test_unknown_channel_leaves_replicas_untouched(self) -> None:
        processor, _, _ = make_processor()
        await processor.process_frame(SNAPSHOT)
        replica = processor.replicas.get("XBT/USD")
        before = (replica.get_bids(), replica.get_asks(), replica.last_checksum)

        await processor.process_frame(b'[336, {"b":[["1","1","1"]]}, "book2-10", "XBT/USD"]')

        assert (replica.get_bids(), replica.get_asks(), replica.last_checksum) == before
        assert replica.state == ReplicaState.LIVE
