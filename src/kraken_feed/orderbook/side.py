from bisect import bisect_left, insort
from collections.abc import Iterator
from decimal import Decimal

from kraken_feed.protocol.models import OrderEvent, OrderEventKind, PriceLevel


class OrderBookSide:
    """One side of a depth-bounded book.

    Levels are held in a ``{price: PriceLevel}`` map with an ascending price
    cache beside it, so the best bid is the last cached price and the best
    ask the first.
    """

    def __init__(self, is_bid: bool, depth: int) -> None:
        if depth <= 0:
            raise ValueError(f"Invalid depth; expected >0 but got {depth}")

        self._is_bid = is_bid
        self._depth = depth
        self._levels: dict[Decimal, PriceLevel] = {}
        self._sorted_prices: list[Decimal] = []

    @property
    def is_bid(self) -> bool:
        return self._is_bid

    @property
    def depth(self) -> int:
        return self._depth

    def __len__(self) -> int:
        return len(self._sorted_prices)

    def __contains__(self, price: Decimal) -> bool:
        return price in self._levels

    def __iter__(self) -> Iterator[PriceLevel]:
        """Iterate levels best first."""
        prices = reversed(self._sorted_prices) if self._is_bid else self._sorted_prices
        for price in prices:
            yield self._levels[price]

    def clear(self) -> None:
        self._levels.clear()
        self._sorted_prices.clear()

    def trim(self) -> None:
        """Drop the worst levels until the side fits its depth."""
        while len(self._sorted_prices) > self._depth:
            worst = self._sorted_prices.pop(0) if self._is_bid else self._sorted_prices.pop()
            del self._levels[worst]

    def get(self, price: Decimal) -> PriceLevel | None:
        return self._levels.get(price)

    def upsert(self, price: Decimal, volume: Decimal, evict: bool = True) -> None:
        """Insert a level, or overwrite the volume of an existing one.

        Args:
            price: Level price.
            volume: New volume at the level.
            evict: Trim to depth right away. Batches pass False and call
                ``trim`` once every event is applied.
        """
        if price not in self._levels:
            insort(self._sorted_prices, price)
        self._levels[price] = PriceLevel(price=price, volume=volume)
        if evict:
            self.trim()

    def delete(self, price: Decimal) -> bool:
        """Remove a level.

        Returns:
            bool: False if no level existed at the price.
        """
        if self._levels.pop(price, None) is None:
            return False
        idx = bisect_left(self._sorted_prices, price)
        del self._sorted_prices[idx]
        return True

    def apply_event(self, event: OrderEvent, evict: bool = True) -> bool:
        """Apply one mutation, a zero volume deletes regardless of kind.

        Returns:
            bool: False if a delete targeted an absent level.
        """
        if event.kind == OrderEventKind.DELETE or event.volume == 0:
            return self.delete(event.price)
        self.upsert(event.price, event.volume, evict)
        return True

    def replace(self, levels: list[PriceLevel]) -> None:
        """Replace every level; a later duplicate price wins."""
        self.clear()
        for level in levels:
            if level.volume == 0:
                continue
            self._levels[level.price] = level
        self._sorted_prices[:] = sorted(self._levels)
        self.trim()

    def best(self) -> PriceLevel | None:
        if not self._sorted_prices:
            return None
        price = self._sorted_prices[-1] if self._is_bid else self._sorted_prices[0]
        return self._levels[price]

    def top(self, depth: int | None = None) -> list[PriceLevel]:
        """Levels best first, limited to ``depth`` when given."""
        if depth is None:
            return list(self)
        if depth <= 0:
            return []
        if self._is_bid:
            prices = reversed(self._sorted_prices[-depth:])
        else:
            prices = self._sorted_prices[:depth]
        return [self._levels[price] for price in prices]
