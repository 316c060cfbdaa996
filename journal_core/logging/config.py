# =============================================================================
# journal_core/logging/config.py
# Logging Setup for the Weather Journal sync core
# =============================================================================

import logging
import sys
import time
from datetime import date
from pathlib import Path
from typing import List, Optional


LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_DIR = Path("logs")

# HTTP and Socket.IO transports log every request/packet at INFO
NOISY_LOGGERS = (
    "urllib3",
    "requests",
    "socketio",
    "socketio.client",
    "engineio",
    "engineio.client",
    "streamlit",
)


def setup_logging(
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_filename: Optional[str] = None,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure the root logger for the journal app.

    Call once at app start, before the SyncEngine is built.

    Args:
        level: Root logging level
        log_to_file: Also write to ``<log_dir>/<log_filename>``
        log_filename: Defaults to journal_YYYY-MM-DD.log
        log_dir: Defaults to ./logs
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_to_file:
        directory = Path(log_dir) if log_dir else LOG_DIR
        directory.mkdir(parents=True, exist_ok=True)
        filename = log_filename or f"journal_{date.today():%Y-%m-%d}.log"
        handlers.append(logging.FileHandler(directory / filename, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("journal_core").info(f"Logging ready (level={logging.getLevelName(level)})")


def get_logger(name: str) -> logging.Logger:
    """
    Module logger.

    Usage:
        from journal_core.logging import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


class LogContext:
    """
    Times a block and logs its start, completion or failure.

    Exceptions are logged and re-raised.

    Usage:
        with LogContext(logger, "Flushing 3 queued operations"):
            replay(queue)
        # Flushing 3 queued operations... started
        # Flushing 3 queued operations... completed (0.41s)
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self._started: Optional[float] = None

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self._started if self._started is not None else 0.0

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.info(f"{self.operation}... started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.logger.info(f"{self.operation}... completed ({self.elapsed:.2f}s)")
        else:
            self.logger.warning(f"{self.operation}... failed after {self.elapsed:.2f}s: {exc_val}")
        return False
