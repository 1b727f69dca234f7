"""Configuration for the feed processor and its order book replicas."""

from msgspec import Struct, field


class BookPrecision(Struct):
    """Fixed decimal precision of a symbol's prices and volumes.

    Used when rendering levels for the checksum. Without it, the exact
    digits received on the wire are used instead.
    """

    price_decimals: int
    volume_decimals: int

    def __post_init__(self) -> None:
        """Validate precision values."""
        if self.price_decimals < 0:
            raise ValueError(
                f"Invalid price_decimals; expected >=0 but got {self.price_decimals}"
            )
        if self.volume_decimals < 0:
            raise ValueError(
                f"Invalid volume_decimals; expected >=0 but got {self.volume_decimals}"
            )


class FeedConfig(Struct):
    """Configuration for the feed processor.

    Attributes:
        book_depth: Levels retained per side when a subscription does not
            state its own depth.
        checksum_levels: Levels per side covered by the checksum.
        bus_capacity: Maximum number of undelivered updates before the
            processing path blocks.
        precisions: Optional per-symbol precision used by the checksum.
    """

    book_depth: int = 10
    checksum_levels: int = 10
    bus_capacity: int = 1024
    precisions: dict[str, BookPrecision] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate feed configuration parameters."""
        if self.book_depth <= 0:
            raise ValueError(
                f"Invalid book_depth; expected >0 but got {self.book_depth}"
            )
        if self.checksum_levels <= 0:
            raise ValueError(
                f"Invalid checksum_levels; expected >0 but got {self.checksum_levels}"
            )
        if self.bus_capacity <= 0:
            raise ValueError(
                f"Invalid bus_capacity; expected >0 but got {self.bus_capacity}"
            )

    @classmethod
    def default(cls) -> "FeedConfig":
        """Create default feed configuration."""
        return cls(
            book_depth=10,
            checksum_levels=10,
            bus_capacity=1024,
        )

    def precision_for(self, symbol: str) -> BookPrecision | None:
        """Return the configured precision for a symbol, if any."""
        return self.precisions.get(symbol)
