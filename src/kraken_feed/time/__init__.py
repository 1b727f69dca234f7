"""Time utilities and timestamp conversion functions."""

from .time import (
    iso8601_to_unix as iso8601_to_unix,
)
from .time import (
    time_iso8601 as time_iso8601,
)
from .time import (
    time_ms as time_ms,
)
from .time import (
    time_s as time_s,
)
from .time import (
    wire_time_to_unix as wire_time_to_unix,
)
