from datetime import datetime, timezone
from decimal import Decimal
from time import time as time_sec

import ciso8601


def time_s() -> float:
    """
    Get the current time in seconds since the epoch.

    Returns
    -------
    float
        The current time in seconds.
    """
    return time_sec()


def time_ms() -> float:
    """
    Get the current time in milliseconds since the epoch.

    Returns
    -------
    float
        The current time in milliseconds.
    """
    return time_sec() * 1_000.0


def time_iso8601() -> str:
    """
    Get the current UTC time as an ISO 8601 string with millisecond precision.

    Returns
    -------
    str
        The current time, e.g. "2023-04-04T00:28:50.516Z".
    """
    now = datetime.now(tz=timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def iso8601_to_unix(timestamp: str) -> float:
    """
    Converts an ISO 8601 formatted timestamp to a Unix timestamp.

    Sub-second precision is kept, the private and level3 channels stamp
    events to the microsecond.

    Parameters
    ----------
    timestamp : str
        An ISO 8601 formatted date-time string (e.g., "2023-09-25T07:49:37.708706Z").

    Returns
    -------
    float
        Seconds since the epoch.

    Example
    -------
    >>> iso8601_to_unix("2023-04-04T00:28:50.516Z")
    1680568130.516
    """
    return ciso8601.parse_datetime(timestamp).timestamp()


def wire_time_to_unix(value: str | int | float | Decimal | None) -> float | None:
    """
    Normalize any timestamp shape seen on the feed into unix seconds.

    The public channels send decimal seconds as strings ("1534614057.321597"),
    the v2 channels send ISO 8601 strings.
    """
    if value is None:
        return None
    if isinstance(value, str):
        if "T" in value:
            return iso8601_to_unix(value)
        return float(value)
    return float(value)
