"""
Queue-based logging setup.

Log records are handed to a background thread through a queue so that
console and file I/O never stall the event loop while snapshots are
being reconciled.
"""

import logging
import sys
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import Queue

from arbclient.config.constants import LOG_DATE_FORMAT, LOG_FORMAT, MAX_LOG_QUEUE_SIZE


class MillisecondFormatter(logging.Formatter):
    """Formatter with millisecond precision timestamps."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        """Format time with milliseconds."""
        s = super().formatTime(record, datefmt or LOG_DATE_FORMAT)
        return f"{s}.{int(record.msecs):03d}"


class QueueLogging:
    """
    Owner of the queue listener behind the root logger.

    All logging calls are non-blocking: records are queued and written
    by the listener thread.
    """

    def __init__(
        self,
        level: int = logging.INFO,
        log_file: Path | None = None,
        stream: object | None = None,
    ) -> None:
        """
        Initialize queue logging.

        Args:
            level: Console logging level.
            log_file: Optional file receiving DEBUG and above.
            stream: Console stream (default: stderr, keeping stdout for the reporter).
        """
        self._level = level
        self._log_file = log_file
        self._stream = stream or sys.stderr
        self._queue: Queue[logging.LogRecord] = Queue(maxsize=MAX_LOG_QUEUE_SIZE)
        self._queue_handler: QueueHandler | None = None
        self._listener: QueueListener | None = None

    def start(self) -> None:
        """Attach the queue handler to the root logger and start the listener."""
        formatter = MillisecondFormatter(LOG_FORMAT, LOG_DATE_FORMAT)
        handlers: list[logging.Handler] = []

        console_handler = logging.StreamHandler(self._stream)  # type: ignore[arg-type]
        console_handler.setFormatter(formatter)
        console_handler.setLevel(self._level)
        handlers.append(console_handler)

        if self._log_file:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self._log_file)
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.DEBUG)
            handlers.append(file_handler)

        root = logging.getLogger()
        root.setLevel(logging.DEBUG if self._log_file else self._level)

        self._queue_handler = QueueHandler(self._queue)
        root.addHandler(self._queue_handler)

        self._listener = QueueListener(self._queue, *handlers, respect_handler_level=True)
        self._listener.start()

    def stop(self) -> None:
        """Flush pending records and detach from the root logger."""
        if self._listener:
            self._listener.stop()
            self._listener = None

        if self._queue_handler:
            logging.getLogger().removeHandler(self._queue_handler)
            self._queue_handler = None

    def __enter__(self) -> "QueueLogging":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.stop()


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
) -> QueueLogging:
    """
    Set up application-wide logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file path.

    Returns:
        Started QueueLogging instance; call ``stop()`` on shutdown.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    queue_logging = QueueLogging(level=numeric_level, log_file=log_file)
    queue_logging.start()

    # Suppress noisy third-party loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return queue_logging
