"""
Logging configuration for iptkit.

Log output goes to stderr so that ``iptkit`` command output stays
parseable. An optional rotating log file records every iptables
invocation with its argument vector.
"""

import logging
import subprocess
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Sequence

LOGGER_NAME = "iptkit"

DEFAULT_LOG_FILE = Path.home() / ".iptkit" / "logs" / "iptkit.log"

CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)-22s | %(funcName)-16s | "
    "%(argv)s | %(message)s"
)

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class CommandFormatter(logging.Formatter):
    """Formatter exposing the iptables argv attached to a record.

    Records logged with ``extra={"argv": [...]}`` show the command line;
    all others show ``-``.
    """

    def format(self, record: logging.LogRecord) -> str:
        argv = getattr(record, "argv", None)
        if not isinstance(argv, str):
            record.argv = subprocess.list2cmdline(argv) if argv else "-"
        return super().format(record)


def setup_logging(
    level: str = "INFO",
    log_file: str | Path | None = None,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
    enable_console: bool = True,
    enable_file: bool = False,
) -> logging.Logger:
    """
    Set up the ``iptkit`` logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Logging level name, case-insensitive
        log_file: Log file path (defaults to ~/.iptkit/logs/iptkit.log)
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep
        enable_console: Log to stderr
        enable_file: Log to the rotating file at DEBUG level

    Returns:
        Package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logger.level)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
        logger.addHandler(console_handler)

    if enable_file:
        log_path = Path(log_file) if log_file else DEFAULT_LOG_FILE
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(CommandFormatter(FILE_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def configure_logging(debug: bool = False, log_file: str | Path | None = None, level: str = "WARNING") -> None:
    """
    Quick logging configuration for the command line.

    Args:
        debug: Log at DEBUG, overriding ``level``
        log_file: Also write this rotating log file
        level: Level used when debug is off
    """
    setup_logging(
        level="DEBUG" if debug else level,
        enable_console=True,
        log_file=log_file,
        enable_file=log_file is not None,
    )


class FailureTracker:
    """Count failed iptables invocations by kind.

    Kinds are short labels such as ``timeout`` or ``spawn_failed``. Each
    failure is also logged at ERROR with its argv.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.counts: dict[str, int] = {}
        self.last: dict[str, str] = {}
        self.logger = logging.getLogger(__name__)

    def record(
        self,
        kind: str,
        message: str,
        argv: Sequence[str] | None = None,
        exception: BaseException | None = None,
    ) -> None:
        with self._lock:
            self.counts[kind] = self.counts.get(kind, 0) + 1
            self.last[kind] = message

        self.logger.error(
            f"{kind}: {message}",
            exc_info=exception,
            extra={"argv": list(argv) if argv else None},
        )

    def get_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self.counts)

    def last_message(self, kind: str) -> str | None:
        with self._lock:
            return self.last.get(kind)

    def reset(self) -> None:
        with self._lock:
            self.counts.clear()
            self.last.clear()


_tracker = FailureTracker()


def track_error(
    kind: str,
    message: str,
    argv: Sequence[str] | None = None,
    exception: BaseException | None = None,
) -> None:
    """Record a failed invocation in the global tracker."""
    _tracker.record(kind, message, argv, exception)


def get_error_stats() -> dict[str, int]:
    """Get failure counts by kind."""
    return _tracker.get_counts()


def get_last_error(kind: str) -> str | None:
    """Get the message of the most recent failure of a kind."""
    return _tracker.last_message(kind)


def reset_error_stats() -> None:
    """Reset the global failure counts."""
    _tracker.reset()
