from decimal import Decimal

from kraken_feed.orderbook.side import OrderBookSide
from kraken_feed.protocol.models import OrderEvent, OrderEventKind, PriceLevel


class RestingOrders:
    """Individual level3 orders of one book side.

    Each price level of the side holds the summed quantity of the orders
    resting at it. Order events adjust that sum by the order's own quantity,
    so deleting one order leaves the others at its price in place.
    """

    def __init__(self, side: OrderBookSide) -> None:
        self._side = side
        self._orders: dict[str, tuple[Decimal, Decimal]] = {}

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: str) -> bool:
        return order_id in self._orders

    def get(self, order_id: str) -> tuple[Decimal, Decimal] | None:
        """``(price, quantity)`` of a resting order."""
        return self._orders.get(order_id)

    def clear(self) -> None:
        self._orders.clear()

    def replace(self, events: list[OrderEvent]) -> None:
        """Rebuild the side from a snapshot of resting orders."""
        self._orders.clear()
        anonymous: list[tuple[Decimal, Decimal]] = []
        for event in events:
            if event.kind == OrderEventKind.DELETE or event.volume == 0:
                continue
            if event.order_id is None:
                anonymous.append((event.price, event.volume))
            else:
                self._orders[event.order_id] = (event.price, event.volume)

        totals: dict[Decimal, Decimal] = {}
        for price, qty in [*self._orders.values(), *anonymous]:
            totals[price] = totals.get(price, Decimal(0)) + qty
        self._side.replace([PriceLevel(price=p, volume=v) for p, v in totals.items()])
        self.prune()

    def _adjust(self, price: Decimal, qty: Decimal, evict: bool) -> None:
        level = self._side.get(price)
        volume = qty if level is None else level.volume + qty
        if volume <= 0:
            self._side.delete(price)
        else:
            self._side.upsert(price, volume, evict)

    def apply_event(self, event: OrderEvent, evict: bool = True) -> bool:
        """Apply one order event to the aggregated side.

        Events without an order id fall back to price level semantics. A
        modify replaces the order's price and quantity, a modify of an
        unknown order adds it.

        Returns:
            bool: False if a delete targeted an unknown order.
        """
        if event.order_id is None:
            return self._side.apply_event(event, evict)

        previous = self._orders.pop(event.order_id, None)
        if previous is not None:
            self._adjust(previous[0], -previous[1], evict)
        elif event.kind == OrderEventKind.DELETE:
            return False

        if event.kind != OrderEventKind.DELETE and event.volume > 0:
            self._orders[event.order_id] = (event.price, event.volume)
            self._adjust(event.price, event.volume, evict)
        return True

    def prune(self) -> None:
        """Forget orders whose price level fell outside the side's depth."""
        for order_id, (price, _) in list(self._orders.items()):
            if price not in self._side:
                del self._orders[order_id]
