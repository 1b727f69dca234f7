"""Logger settings, decodable from the same JSON documents as ``FeedConfig``."""

from enum import IntEnum

from msgspec import Struct

_FORMAT_KEYS = ("%(asctime)s", "%(levelname)s", "%(name)s", "%(message)s")


class LogLevel(IntEnum):
    """Severity of a log line; TRACE covers per-frame noise such as acks."""

    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARNING = 3
    ERROR = 4


class LoggerConfig(Struct):
    """Settings of the buffered feed logger.

    Attributes:
        base_level: Lowest level that is buffered; may be changed at runtime
            through ``Logger.set_log_level``.
        do_stdout: Print flushed lines to stdout as well as to handlers.
        str_format: %-style line format. Only the asctime, levelname, name
            and message keys are filled in, and message is required.
        flush_interval_s: Longest time a line waits in the buffer.
        buffer_size: Buffered line count that forces an early flush.
    """

    base_level: LogLevel = LogLevel.INFO
    do_stdout: bool = True
    str_format: str = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
    flush_interval_s: float = 1.0
    buffer_size: int = 10000

    def __post_init__(self) -> None:
        """Validate logger settings."""
        if self.flush_interval_s <= 0.0:
            raise ValueError(
                f"Invalid flush_interval_s; expected >0 but got {self.flush_interval_s}"
            )
        if self.buffer_size <= 0:
            raise ValueError(
                f"Invalid buffer_size; expected >0 but got {self.buffer_size}"
            )
        if "%(message)s" not in self.str_format:
            raise ValueError("Invalid str_format; expected a '%(message)s' placeholder")

        stripped = self.str_format
        for key in _FORMAT_KEYS:
            stripped = stripped.replace(key, "")
        if "%(" in stripped:
            raise ValueError(
                f"Invalid str_format; only {', '.join(_FORMAT_KEYS)} are filled in "
                f"but got {self.str_format!r}"
            )

    @classmethod
    def default(cls) -> "LoggerConfig":
        """Create default logger configuration."""
        return cls()

    @classmethod
    def quiet(cls) -> "LoggerConfig":
        """Warnings and errors only, without stdout; for embedding in a host
        application that supplies its own handlers."""
        return cls(base_level=LogLevel.WARNING, do_stdout=False)
