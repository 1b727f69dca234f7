"""Exception hierarchy for frame decoding, payload typing and book replication."""


class FeedError(Exception):
    """Base class for every error raised by the feed core."""


class MalformedFrame(FeedError):
    """Frame matches neither the event shape nor any positional array shape."""

    def __init__(self, reason: str, frame: bytes | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.frame = frame


class SchemaMismatch(FeedError):
    """Payload arity or fields do not match the schema of its channel."""

    def __init__(self, channel: str, reason: str) -> None:
        super().__init__(f"[{channel}] {reason}")
        self.channel = channel
        self.reason = reason


class UnknownChannel(FeedError):
    """Channel name has no payload decoder."""

    def __init__(self, channel: str) -> None:
        super().__init__(f"Unknown channel; got '{channel}'")
        self.channel = channel


class ChecksumMismatch(FeedError):
    """Local book checksum differs from the server supplied value."""

    def __init__(self, symbol: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Checksum mismatch for {symbol}; expected {expected} but got {actual}"
        )
        self.symbol = symbol
        self.expected = expected
        self.actual = actual


class TransportError(FeedError):
    """Transport failed while receiving or sending."""


class TransportClosed(TransportError):
    """Transport was closed; the processing path exits cleanly."""


class SubscriptionRejected(FeedError):
    """Server answered a subscribe or unsubscribe request with an error."""

    def __init__(self, channel: str | None, symbol: str | None, reason: str) -> None:
        super().__init__(f"Subscription rejected for {channel} {symbol}; {reason}")
        self.channel = channel
        self.symbol = symbol
        self.reason = reason


class BusClosed(FeedError):
    """Update bus was closed and holds no further updates."""
