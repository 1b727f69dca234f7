"""Buffered logging used by the feed processor."""

from .config import (
    LoggerConfig as LoggerConfig,
)
from .config import (
    LogLevel as LogLevel,
)
from .handlers import (
    BaseLogHandler as BaseLogHandler,
)
from .logger import (
    Logger as Logger,
)

__all__ = [
    "LogLevel",
    "LoggerConfig",
    "BaseLogHandler",
    "Logger",
]
