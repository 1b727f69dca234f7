"""CRC32 book checksum as published for the Kraken depth channels.

The top ask levels (lowest first) then the top bid levels (highest first)
are rendered as ``price`` then ``volume``. Each value drops its decimal point
and leading zeros, all pieces are concatenated and the CRC32 of the result
is compared, as an unsigned 32 bit integer, to the server value.
"""

import zlib
from collections.abc import Iterable
from decimal import Decimal

from kraken_feed.config import BookPrecision
from kraken_feed.protocol.models import PriceLevel


def format_checksum_value(value: Decimal, decimals: int | None = None) -> str:
    """Render one price or volume for the checksum string.

    Args:
        value: Price or volume.
        decimals: Fixed number of decimals; when None the exact digits of
            ``value`` are used.

    Returns:
        str: Digits with the decimal point removed and leading zeros stripped.

    Example:
        >>> format_checksum_value(Decimal("0.05005"))
        '5005'
    """
    text = format(value, "f") if decimals is None else format(value, f".{decimals}f")
    return text.replace(".", "").lstrip("0")


def checksum_string(
    bids: Iterable[PriceLevel],
    asks: Iterable[PriceLevel],
    precision: BookPrecision | None = None,
) -> str:
    """Build the string fed into the CRC32, asks first then bids."""
    price_decimals = precision.price_decimals if precision is not None else None
    volume_decimals = precision.volume_decimals if precision is not None else None

    pieces: list[str] = []
    for levels in (asks, bids):
        for level in levels:
            pieces.append(format_checksum_value(level.price, price_decimals))
            pieces.append(format_checksum_value(level.volume, volume_decimals))
    return "".join(pieces)


def book_checksum(
    bids: Iterable[PriceLevel],
    asks: Iterable[PriceLevel],
    precision: BookPrecision | None = None,
) -> int:
    """Compute the book checksum.

    Args:
        bids: Top bid levels, highest price first.
        asks: Top ask levels, lowest price first.
        precision: Optional fixed precision of the symbol.

    Returns:
        int: Unsigned 32 bit CRC32.
    """
    return zlib.crc32(checksum_string(bids, asks, precision).encode()) & 0xFFFFFFFF
