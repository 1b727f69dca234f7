"""Streaming Kraken WebSocket feed core: frame decoding, payload typing and
checksum-verified order book replicas."""

from .bus import (
    UpdateBus as UpdateBus,
)
from .config import (
    BookPrecision as BookPrecision,
)
from .config import (
    FeedConfig as FeedConfig,
)
from .errors import (
    ChecksumMismatch as ChecksumMismatch,
)
from .errors import (
    FeedError as FeedError,
)
from .errors import (
    MalformedFrame as MalformedFrame,
)
from .errors import (
    SchemaMismatch as SchemaMismatch,
)
from .errors import (
    TransportClosed as TransportClosed,
)
from .errors import (
    TransportError as TransportError,
)
from .errors import (
    UnknownChannel as UnknownChannel,
)
from .feed import (
    FeedProcessor as FeedProcessor,
)
from .logging import (
    BaseLogHandler as BaseLogHandler,
)
from .logging import (
    Logger as Logger,
)
from .logging import (
    LoggerConfig as LoggerConfig,
)
from .logging import (
    LogLevel as LogLevel,
)
from .orderbook import (
    OrderBookReplica as OrderBookReplica,
)
from .orderbook import (
    ReplicaRegistry as ReplicaRegistry,
)
from .orderbook import (
    ReplicaState as ReplicaState,
)
from .protocol import (
    ChannelPayload as ChannelPayload,
)
from .protocol import (
    PayloadKind as PayloadKind,
)
from .protocol import (
    Update as Update,
)
from .protocol import (
    decode_frame as decode_frame,
)
from .protocol import (
    decode_payload as decode_payload,
)
from .transport import (
    AiohttpTransport as AiohttpTransport,
)
from .transport import (
    Transport as Transport,
)

__all__ = [
    "UpdateBus",
    "BookPrecision",
    "FeedConfig",
    "ChecksumMismatch",
    "FeedError",
    "MalformedFrame",
    "SchemaMismatch",
    "TransportClosed",
    "TransportError",
    "UnknownChannel",
    "FeedProcessor",
    "BaseLogHandler",
    "Logger",
    "LoggerConfig",
    "LogLevel",
    "OrderBookReplica",
    "ReplicaRegistry",
    "ReplicaState",
    "ChannelPayload",
    "PayloadKind",
    "Update",
    "decode_frame",
    "decode_payload",
    "AiohttpTransport",
    "Transport",
]
