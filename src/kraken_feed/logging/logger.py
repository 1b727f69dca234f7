"""Buffered single-process logger.

Log calls only format and append to an in-memory buffer, so they are cheap
enough for the frame processing path. A background flusher thread drains the
buffer to the configured handlers every ``flush_interval_s``, or immediately
after an error-level message or a full buffer.
"""

import asyncio
import sys
import threading
import traceback

from kraken_feed.logging.config import LoggerConfig, LogLevel
from kraken_feed.logging.handlers import BaseLogHandler
from kraken_feed.time import time_iso8601


class Logger:
    """A simple logger that buffers messages and pushes them to
    configured handlers at an appropriate time or based on severity.
    """

    def __init__(
        self,
        name: str = "",
        config: LoggerConfig | None = None,
        handlers: list[BaseLogHandler] | None = None,
    ):
        """Initializes a Logger with specified configuration and handlers.

        Args:
            name (str): Name of the logger. Defaults to an empty string.
            config (LoggerConfig): Configuration settings for the logger.
            handlers (list[BaseLogHandler], optional): Handler objects that
                inherit from BaseLogHandler. Defaults to an empty list.

        Raises:
            TypeError: If one of the provided handlers does not inherit from BaseLogHandler.

        """
        self._name = name
        self._config = config if config is not None else LoggerConfig()
        self._handlers = handlers if handlers is not None else []

        for handler in self._handlers:
            if not isinstance(handler, BaseLogHandler):
                raise TypeError(
                    f"Invalid handler class; expected BaseLogHandler but got {type(handler)}"
                )
            handler.add_primary_config(self._config)

        self._buffer: list[str] = []
        self._lock = threading.Lock()
        self._wakeup = threading.Event()
        self._is_running = True

        self._flusher = threading.Thread(
            target=self._run_flusher,
            name=f"logger-flusher-{name}",
            daemon=True,
        )
        self._flusher.start()

    def _run_flusher(self) -> None:
        """Thread entrypoint, owns a private event loop for async handlers."""
        asyncio.run(self._flush_loop())

    async def _flush_loop(self) -> None:
        """Flush on interval expiry or on an explicit wakeup until stopped."""
        while self._is_running:
            await asyncio.to_thread(self._wakeup.wait, self._config.flush_interval_s)
            self._wakeup.clear()
            await self._flush_buffer()

    def _drain(self) -> list[str]:
        with self._lock:
            batch = self._buffer
            self._buffer = []
        return batch

    async def _flush_buffer(self) -> None:
        """Flushes the log message buffer to stdout and all handlers."""
        batch = self._drain()
        if not batch:
            return

        if self._config.do_stdout:
            for log_msg in batch:
                print(log_msg)

        results = await asyncio.gather(
            *(handler.push(batch) for handler in self._handlers),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                traceback.print_exception(result, file=sys.stderr)

    def _process_log(self, level: LogLevel, msg: str) -> None:
        """Formats and buffers a message, waking the flusher when required.

        Args:
            level (LogLevel): The severity level of the message.
            msg (str): The actual log message.

        """
        try:
            log_msg = self._config.str_format % {
                "asctime": time_iso8601(),
                "name": self._name,
                "levelname": level.name,
                "message": msg,
            }
        except (KeyError, TypeError, ValueError):
            traceback.print_exc(file=sys.stderr)
            return

        with self._lock:
            self._buffer.append(log_msg)
            is_full = len(self._buffer) >= self._config.buffer_size

        if is_full or level >= LogLevel.ERROR:
            self._wakeup.set()

    def _log(self, level: LogLevel, msg: str) -> None:
        if self._is_running and self._config.base_level <= level:
            self._process_log(level, msg)

    def set_log_level(self, level: LogLevel) -> None:
        """Modify the logger's base log level at runtime.

        Args:
            level (LogLevel): The new base log level.

        """
        self.debug(f"Changing base log level from {self._config.base_level} to {level}")
        self._config.base_level = level
        for handler in self._handlers:
            handler.add_primary_config(self._config)

    def trace(self, msg: str) -> None:
        """Send a trace-level log message."""
        self._log(LogLevel.TRACE, msg)

    def debug(self, msg: str) -> None:
        """Send a debug-level log message."""
        self._log(LogLevel.DEBUG, msg)

    def info(self, msg: str) -> None:
        """Send an info-level log message."""
        self._log(LogLevel.INFO, msg)

    def warning(self, msg: str) -> None:
        """Send a warning-level log message."""
        self._log(LogLevel.WARNING, msg)

    def error(self, msg: str) -> None:
        """Send an error-level log message."""
        self._log(LogLevel.ERROR, msg)

    async def shutdown(self) -> None:
        """Stops the flusher, flushes anything still buffered and closes handlers."""
        if not self._is_running:
            return
        self._is_running = False
        self._wakeup.set()
        await asyncio.to_thread(self._flusher.join)

        await self._flush_buffer()
        for handler in self._handlers:
            await handler.aclose()

    def is_running(self) -> bool:
        """Check if the logger is running."""
        return self._is_running

    def get_name(self) -> str:
        """Get the name of the logger."""
        return self._name

    def get_config(self) -> LoggerConfig:
        """Get the configuration of the logger."""
        return self._config
