"""Feed processor.

Ties transport, frame decoder, payload typer, book replicas and update bus
together in a single cooperative path: each frame is decoded, typed, applied
and published before the next one is read.
"""

from collections.abc import Callable

from kraken_feed.bus import UpdateBus
from kraken_feed.config import FeedConfig
from kraken_feed.errors import (
    ChecksumMismatch,
    FeedError,
    MalformedFrame,
    SchemaMismatch,
    SubscriptionRejected,
    TransportClosed,
    UnknownChannel,
)
from kraken_feed.logging import Logger
from kraken_feed.orderbook import ReplicaRegistry
from kraken_feed.protocol.frame import decode_frame
from kraken_feed.protocol.models import (
    AccountOrderUpdate,
    ChannelPayload,
    Envelope,
    Event,
    OrderBookSnapshot,
    TradeList,
    Update,
    kind_of,
)
from kraken_feed.protocol.payloads import (
    channel_family,
    decode_event_payload,
    decode_payload,
)
from kraken_feed.transport import Transport

BOOK_CHANNELS = frozenset({"book", "level3"})


def channel_depth(channel_name: str | None) -> int | None:
    """Depth encoded in a channel name, "book-25" -> 25."""
    if channel_name is None or "-" not in channel_name:
        return None
    suffix = channel_name.split("-", 1)[1]
    return int(suffix) if suffix.isdigit() else None


class FeedProcessor:
    """Processes inbound frames into typed updates and book replicas."""

    def __init__(
        self,
        transport: Transport,
        bus: UpdateBus | None = None,
        config: FeedConfig | None = None,
        on_error: Callable[[FeedError], None] | None = None,
        on_desync: Callable[[str], None] | None = None,
        logger: Logger | None = None,
    ) -> None:
        """
        Args:
            transport: Source of raw frames.
            bus: Destination of typed updates. Created from
                ``config.bus_capacity`` when omitted.
            config: Feed configuration, defaults to ``FeedConfig.default()``.
            on_error: Called with every non-fatal error.
            on_desync: Called with the symbol of a replica that lost sync.
            logger: Optional logger.
        """
        self._transport = transport
        self._config = config if config is not None else FeedConfig.default()
        self._bus = bus if bus is not None else UpdateBus(self._config.bus_capacity)
        self._on_error = on_error
        self._on_desync = on_desync
        self._logger = logger
        self._replicas = ReplicaRegistry(self._config, logger)
        self._is_running = False

    @property
    def bus(self) -> UpdateBus:
        return self._bus

    @property
    def replicas(self) -> ReplicaRegistry:
        return self._replicas

    @property
    def config(self) -> FeedConfig:
        return self._config

    def is_running(self) -> bool:
        return self._is_running

    def _log(self, level: str, msg: str) -> None:
        if self._logger is not None:
            getattr(self._logger, level)(msg)

    def _report(self, exc: FeedError) -> None:
        """Log a non-fatal error and hand it to the error observer."""
        level = "warning" if isinstance(exc, UnknownChannel) else "error"
        self._log(level, f"{type(exc).__name__}: {exc}")
        if self._on_error is not None:
            self._on_error(exc)

    async def process_frame(self, raw: bytes | str) -> Update | None:
        """Decode, type, apply and publish one frame.

        Args:
            raw: Frame as received from the transport.

        Returns:
            Update | None: The published update, or None when the frame
                carried no channel payload or was dropped.
        """
        try:
            decoded = decode_frame(raw)
        except MalformedFrame as exc:
            self._report(exc)
            return None

        if isinstance(decoded, Event):
            return await self._handle_event(decoded)
        return await self._handle_envelope(decoded)

    async def _handle_envelope(self, envelope: Envelope) -> Update | None:
        try:
            payload = decode_payload(envelope)
        except (SchemaMismatch, UnknownChannel) as exc:
            self._report(exc)
            return None

        if channel_family(envelope.channel_name) == "book":
            self._apply_to_replica(
                envelope.pair, payload, channel_depth(envelope.channel_name)
            )

        return await self._publish(
            Update(
                kind=kind_of(payload),
                channel_name=envelope.channel_name,
                data=payload,
                pair=envelope.pair,
                sequence=envelope.sequence,
                channel_id=envelope.channel_id,
            )
        )

    async def _handle_event(self, event: Event) -> Update | None:
        if event.event == "subscriptionStatus" or event.method in ("subscribe", "unsubscribe"):
            self._on_subscription(event)
            return None

        if event.event is not None:
            if event.event == "error":
                self._log("warning", f"Error event; {event.error_message}")
            else:
                self._log("trace", f"Control event '{event.event}'")
            return None

        try:
            payload = decode_event_payload(event)
        except (SchemaMismatch, UnknownChannel) as exc:
            self._report(exc)
            return None
        if payload is None:
            return None

        symbol = _symbol_of(payload)
        if isinstance(payload, AccountOrderUpdate):
            self._apply_to_replica(symbol, payload, None)

        return await self._publish(
            Update(
                kind=kind_of(payload),
                channel_name=event.channel,
                data=payload,
                pair=symbol,
            )
        )

    async def _publish(self, update: Update) -> Update:
        await self._bus.publish(update)
        return update

    def _on_subscription(self, event: Event) -> None:
        """Create, reset or drop replicas from subscription acks."""
        channel = event.subscribed_channel
        symbol = event.symbol

        if event.status == "error" or event.success is False:
            self._report(
                SubscriptionRejected(
                    channel, symbol, event.error_message or event.error or "unknown error"
                )
            )
            return

        if channel is None or symbol is None or channel_family(channel) not in BOOK_CHANNELS:
            return

        if event.status == "unsubscribed" or event.method == "unsubscribe":
            self._replicas.on_unsubscribed(symbol)
            self._log("info", f"Unsubscribed from {channel} {symbol}")
            return

        depth = event.depth if event.depth is not None else channel_depth(channel)
        replica = self._replicas.on_subscribed(symbol, depth)
        self._log("info", f"Subscribed to {channel} {symbol} with depth {replica.depth}")

    def _apply_to_replica(
        self, symbol: str | None, payload: ChannelPayload, depth: int | None
    ) -> None:
        if symbol is None:
            self._log("debug", "Dropping book payload without a symbol")
            return

        replica = self._replicas.get(symbol)
        if replica is None:
            is_snapshot = isinstance(payload, OrderBookSnapshot) or (
                isinstance(payload, AccountOrderUpdate) and payload.is_snapshot
            )
            if not is_snapshot:
                self._log("debug", f"Dropping delta for untracked symbol {symbol}")
                return
            replica = self._replicas.get_or_create(symbol, depth)

        try:
            replica.apply(payload)
        except ChecksumMismatch as exc:
            self._report(exc)
            if self._on_desync is not None:
                self._on_desync(symbol)

    async def run(self) -> None:
        """Process frames until the transport closes, then close the bus.

        Raises:
            TransportError: On any transport failure other than a close.
        """
        self._is_running = True
        try:
            while True:
                try:
                    raw = await self._transport.receive()
                except TransportClosed as exc:
                    self._log("info", f"Transport closed; {exc}")
                    break
                await self.process_frame(raw)
        finally:
            self._is_running = False
            await self._bus.close()

    async def stop(self) -> None:
        """Close the transport, ending ``run`` after the in-flight frame."""
        await self._transport.close()


def _symbol_of(payload: ChannelPayload) -> str | None:
    if isinstance(payload, AccountOrderUpdate):
        return payload.symbol
    if isinstance(payload, TradeList) and payload.trades:
        return payload.trades[0].symbol
    return None
