"""
Centralized logging configuration for private trading.

Every session runs its steps in its own worker thread, so each log line
carries the thread name. Without it the interleaved output of several
concurrent sessions cannot be told apart.

Features:
    - Automatic thread name in all log messages
    - Console output (always enabled)
    - Rotating file logs (optional, for production)
    - Separate error log for ERROR/CRITICAL messages
    - Per-session loggers

Log Format:
    2026-10-17 10:15:30 [INFO    ] [MainThread] private_trading.app - Starting application
    2026-10-17 10:15:31 [INFO    ] [Session-a1b2c3d4] private_trading.session.a1b2c3d4 - Shield submitted
    2026-10-17 10:15:39 [WARNING ] [MainThread] private_trading.privacy.aggregator - Status degraded

Usage:
    # At application startup
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=logging.INFO, enable_file_logging=True)

    # In modules
    logger = get_logger(__name__)

    # In session worker threads
    session_logger = get_session_logger(session_id)
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


APP_NAMESPACE = "private_trading"

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class ThreadContextFilter(logging.Filter):
    """Stamps each record with the name of the thread that emitted it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.thread_name = threading.current_thread().name
        return True


def _rotating_file(path: Path, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8"
    )
    handler.setLevel(level)
    return handler


def setup_logging(
    app_name: str = APP_NAMESPACE,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = False,
) -> logging.Logger:
    """
    Configure the application logger tree.

    Console output is always on. With file logging, records also go to
    <app_name>.log and ERROR and above additionally to <app_name>_error.log,
    both rotated at 10 MB. Calling it again replaces the previous handlers.

    Args:
        app_name: Name of the application logger (default: "private_trading")
        log_level: Minimum level for the logger and its non-error handlers
        log_dir: Directory for log files (default: ./logs next to this file)
        enable_file_logging: Write rotating log files as well

    Returns:
        The configured application logger
    """
    app_logger = logging.getLogger(app_name)
    app_logger.setLevel(log_level)
    app_logger.propagate = False
    app_logger.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    handlers = [console]

    log_file = None
    if enable_file_logging:
        log_dir = log_dir or Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"{app_name}.log"
        handlers.append(_rotating_file(log_file, log_level))
        handlers.append(_rotating_file(log_dir / f"{app_name}_error.log", logging.ERROR))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    thread_filter = ThreadContextFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(thread_filter)
        app_logger.addHandler(handler)

    if log_file:
        app_logger.info(f"File logging enabled: {log_file}")
    app_logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return app_logger


def get_logger(name: str) -> logging.Logger:
    """
    Module logger under the application namespace.

    get_logger("privacy.tracker") -> "private_trading.privacy.tracker"
    """
    if not name.startswith(APP_NAMESPACE):
        name = f"{APP_NAMESPACE}.{name}"
    return logging.getLogger(name)


def get_session_logger(session_id: str) -> logging.Logger:
    """Logger named after the first 8 characters of a session id."""
    return logging.getLogger(f"{APP_NAMESPACE}.session.{session_id[:8]}")


def set_thread_name(name: str) -> None:
    # Shown in the [thread_name] field of every record from this thread
    threading.current_thread().name = name
