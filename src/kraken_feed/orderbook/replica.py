from decimal import Decimal
from enum import IntEnum

import numpy as np

from kraken_feed.config import BookPrecision, FeedConfig
from kraken_feed.errors import ChecksumMismatch
from kraken_feed.logging import Logger
from kraken_feed.orderbook.checksum import book_checksum
from kraken_feed.orderbook.orders import RestingOrders
from kraken_feed.orderbook.side import OrderBookSide
from kraken_feed.protocol.models import (
    AccountOrderUpdate,
    ChannelPayload,
    OrderBookDelta,
    OrderBookSnapshot,
    OrderEvent,
    PriceLevel,
)


class ReplicaState(IntEnum):
    """Lifecycle of a replica.

    UNINITIALIZED -> AWAITING_SNAPSHOT -> LIVE <-> DESYNCED, where a
    snapshot moves any state to LIVE.
    """

    UNINITIALIZED = 0
    AWAITING_SNAPSHOT = 1
    LIVE = 2
    DESYNCED = 3


class OrderBookReplica:
    """Local copy of one symbol's depth-bounded book, kept in sync from
    snapshots and deltas and verified against server checksums.
    """

    def __init__(
        self,
        symbol: str,
        depth: int = 10,
        checksum_levels: int = 10,
        precision: BookPrecision | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Initialize an empty replica.

        Args:
            symbol: Symbol the replica tracks.
            depth: Levels retained per side.
            checksum_levels: Levels per side covered by the checksum.
            precision: Fixed precision used to render checksum values.
            logger: Optional logger for discarded or no-op events.
        """
        if checksum_levels <= 0:
            raise ValueError(
                f"Invalid checksum_levels; expected >0 but got {checksum_levels}"
            )

        self._symbol = symbol
        self._checksum_levels = checksum_levels
        self._precision = precision
        self._logger = logger

        self._bids = OrderBookSide(is_bid=True, depth=depth)
        self._asks = OrderBookSide(is_bid=False, depth=depth)
        self._bid_orders = RestingOrders(self._bids)
        self._ask_orders = RestingOrders(self._asks)
        self._state = ReplicaState.UNINITIALIZED
        self._checksum: int | None = None

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def depth(self) -> int:
        return self._bids.depth

    @property
    def state(self) -> ReplicaState:
        return self._state

    @property
    def last_checksum(self) -> int | None:
        """Checksum of the book after the last snapshot or delta batch."""
        return self._checksum

    def is_live(self) -> bool:
        return self._state == ReplicaState.LIVE

    def _debug(self, msg: str) -> None:
        if self._logger is not None:
            self._logger.debug(f"[{self._symbol}] {msg}")

    def mark_awaiting(self) -> None:
        """Clear the book and wait for a snapshot after a subscription ack."""
        self._bids.clear()
        self._asks.clear()
        self._bid_orders.clear()
        self._ask_orders.clear()
        self._checksum = None
        self._state = ReplicaState.AWAITING_SNAPSHOT

    def compute_checksum(self) -> int:
        """Checksum over the top ``checksum_levels`` levels of each side."""
        return book_checksum(
            bids=self._bids.top(self._checksum_levels),
            asks=self._asks.top(self._checksum_levels),
            precision=self._precision,
        )

    def consume_snapshot(self, bids: list[PriceLevel], asks: list[PriceLevel]) -> None:
        """Replace both sides and go LIVE, whatever the current state.

        Args:
            bids: Bid levels in any order.
            asks: Ask levels in any order.
        """
        self._bid_orders.clear()
        self._ask_orders.clear()
        self._bids.replace(bids)
        self._asks.replace(asks)
        self._checksum = self.compute_checksum()
        self._state = ReplicaState.LIVE

    def consume_order_snapshot(self, bids: list[OrderEvent], asks: list[OrderEvent]) -> None:
        """Replace both sides from level3 orders, summing quantities per price,
        and go LIVE."""
        self._bid_orders.replace(bids)
        self._ask_orders.replace(asks)
        self._checksum = self.compute_checksum()
        self._state = ReplicaState.LIVE

    def _apply_levels(self, side: OrderBookSide, events: list[OrderEvent]) -> None:
        for event in events:
            if not side.apply_event(event, evict=False):
                self._debug(f"Ignoring delete of absent level {event.price}")

    def _apply_orders(self, orders: RestingOrders, events: list[OrderEvent]) -> None:
        for event in events:
            if not orders.apply_event(event, evict=False):
                self._debug(f"Ignoring delete of unknown order {event.order_id}")

    def apply_delta(
        self,
        bids: list[OrderEvent],
        asks: list[OrderEvent],
        checksum: int | None = None,
        by_order: bool = False,
    ) -> bool:
        """Apply one delta batch in arrival order, then verify the checksum.

        Sides are trimmed to depth only after the whole batch, since the
        server checksum describes the book after every event of it.

        Args:
            bids: Bid mutations.
            asks: Ask mutations.
            checksum: Server checksum of the book after the batch, if sent.
            by_order: Treat events as level3 orders that adjust the
                aggregated quantity of their price level.

        Returns:
            bool: False if the delta was discarded because the replica is
                not LIVE.

        Raises:
            ChecksumMismatch: If the local checksum differs from ``checksum``;
                the replica is left DESYNCED.
        """
        if self._state != ReplicaState.LIVE:
            self._debug(f"Discarding delta in state {self._state.name}")
            return False

        try:
            if by_order:
                self._apply_orders(self._bid_orders, bids)
                self._apply_orders(self._ask_orders, asks)
            else:
                self._apply_levels(self._bids, bids)
                self._apply_levels(self._asks, asks)
            self._bids.trim()
            self._asks.trim()
            self._bid_orders.prune()
            self._ask_orders.prune()
        except Exception:
            self._state = ReplicaState.DESYNCED
            raise

        self._checksum = self.compute_checksum()
        if checksum is not None and checksum != self._checksum:
            self._state = ReplicaState.DESYNCED
            raise ChecksumMismatch(self._symbol, checksum, self._checksum)
        return True

    def apply(self, payload: ChannelPayload) -> bool:
        """Apply any book-shaped payload.

        Returns:
            bool: True if the payload changed the replica.
        """
        match payload:
            case OrderBookSnapshot(bids=bids, asks=asks):
                self.consume_snapshot(bids, asks)
                return True
            case OrderBookDelta(bids=bids, asks=asks, checksum=checksum):
                return self.apply_delta(bids, asks, checksum)
            case AccountOrderUpdate(is_snapshot=True, bids=bids, asks=asks):
                self.consume_order_snapshot(bids, asks)
                return True
            case AccountOrderUpdate(bids=bids, asks=asks, checksum=checksum):
                return self.apply_delta(bids, asks, checksum, by_order=True)
            case _:
                raise TypeError(
                    f"Invalid payload; expected a book payload but got {type(payload).__name__}"
                )

    def _ensure_bbo_available(self) -> None:
        if not self._bids or not self._asks:
            raise ValueError("Orderbook side unavailable.")

    def get_bids(self, depth: int | None = None) -> list[PriceLevel]:
        """Get bid levels sorted by price (highest first)."""
        return self._bids.top(depth)

    def get_asks(self, depth: int | None = None) -> list[PriceLevel]:
        """Get ask levels sorted by price (lowest first)."""
        return self._asks.top(depth)

    def get_bbo(self) -> tuple[PriceLevel, PriceLevel]:
        """Get best bid and offer as a tuple."""
        self._ensure_bbo_available()
        return self._bids.best(), self._asks.best()

    def get_spread(self) -> Decimal:
        """Get the bid-ask spread."""
        bid, ask = self.get_bbo()
        return ask.price - bid.price

    def get_mid_price(self) -> Decimal:
        """Get the mid price between best bid and ask."""
        bid, ask = self.get_bbo()
        return (bid.price + ask.price) / 2

    def to_numpy(self) -> tuple[np.ndarray, np.ndarray]:
        """
        Export the book as float arrays, formatted as [[price, volume], ...].

        Returns
        -------
        tuple[np.ndarray, np.ndarray]
            Bids (highest first) and asks (lowest first), each of shape (n, 2).
        """

        def _as_array(levels: list[PriceLevel]) -> np.ndarray:
            array = np.zeros((len(levels), 2), dtype=np.float64)
            for i, level in enumerate(levels):
                array[i, 0] = float(level.price)
                array[i, 1] = float(level.volume)
            return array

        return _as_array(self.get_bids()), _as_array(self.get_asks())


class ReplicaRegistry:
    """Replicas keyed by symbol, created and dropped by subscription acks."""

    def __init__(self, config: FeedConfig | None = None, logger: Logger | None = None) -> None:
        self._config = config if config is not None else FeedConfig.default()
        self._logger = logger
        self._replicas: dict[str, OrderBookReplica] = {}

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._replicas

    def __len__(self) -> int:
        return len(self._replicas)

    def symbols(self) -> list[str]:
        return list(self._replicas)

    def _create(self, symbol: str, depth: int | None) -> OrderBookReplica:
        replica = OrderBookReplica(
            symbol=symbol,
            depth=depth if depth is not None else self._config.book_depth,
            checksum_levels=self._config.checksum_levels,
            precision=self._config.precision_for(symbol),
            logger=self._logger,
        )
        self._replicas[symbol] = replica
        return replica

    def on_subscribed(self, symbol: str, depth: int | None = None) -> OrderBookReplica:
        """Create or reset the replica of a symbol, leaving it AWAITING_SNAPSHOT.

        An ack stating a different depth than the existing replica's
        replaces it.
        """
        replica = self._replicas.get(symbol)
        if replica is None or (depth is not None and depth != replica.depth):
            replica = self._create(symbol, depth)
        replica.mark_awaiting()
        return replica

    def on_unsubscribed(self, symbol: str) -> OrderBookReplica | None:
        return self.drop(symbol)

    def get(self, symbol: str) -> OrderBookReplica | None:
        return self._replicas.get(symbol)

    def get_or_create(self, symbol: str, depth: int | None = None) -> OrderBookReplica:
        """Return the replica of a symbol, creating an UNINITIALIZED one if absent."""
        replica = self._replicas.get(symbol)
        if replica is None:
            replica = self._create(symbol, depth)
        return replica

    def drop(self, symbol: str) -> OrderBookReplica | None:
        return self._replicas.pop(symbol, None)
