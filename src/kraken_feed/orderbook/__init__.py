from .checksum import (
    book_checksum as book_checksum,
)
from .checksum import (
    format_checksum_value as format_checksum_value,
)
from .replica import (
    OrderBookReplica as OrderBookReplica,
)
from .replica import (
    ReplicaRegistry as ReplicaRegistry,
)
from .replica import (
    ReplicaState as ReplicaState,
)
from .orders import (
    RestingOrders as RestingOrders,
)
from .side import (
    OrderBookSide as OrderBookSide,
)
