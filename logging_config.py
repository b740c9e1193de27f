"""
Centralized logging configuration for PrintShopWeb.

Every record carries the name of the thread that produced it, so request
handlers and the background cache sync can be told apart in one log.

Log Format:
    2026-03-02 09:12:40 [INFO    ] [MainThread] print_shop_web.app - Starting application
    2026-03-02 09:12:41 [INFO    ] [OfflineSync] print_shop_web.services.offline_sync - Synced 42 jobs
    2026-03-02 09:12:44 [INFO    ] [MainThread] print_shop_web.job.8f3a2c1d - Status -> Printing

Usage:
    # At application startup
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=logging.INFO, enable_file_logging=True)

    # In modules
    logger = get_logger(__name__)

    # For one job's status history
    job_logger = get_job_logger(job_id)
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


LOGGER_NAMESPACE = "print_shop_web"

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


# =============================================================================
# THREAD CONTEXT FILTER
# =============================================================================

class ThreadContextFilter(logging.Filter):
    """Stamp ``thread_name`` and ``thread_id`` onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        current_thread = threading.current_thread()
        record.thread_name = current_thread.name
        record.thread_id = threading.get_ident()
        return True


# =============================================================================
# LOGGING SETUP
# =============================================================================

def _rotating_handler(path: Path, level: int, formatter: logging.Formatter,
                      thread_filter: logging.Filter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(thread_filter)
    return handler


def setup_logging(
    app_name: str = LOGGER_NAMESPACE,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> logging.Logger:
    """
    Configure the application logger tree.

    Console output is always on. With ``enable_file_logging`` two rotating
    files are added under ``log_dir``: ``<app_name>.log`` for everything at
    ``log_level`` and ``<app_name>_error.log`` for ERROR and above.

    Calling this again replaces the handlers, so tests and the app factory
    can reconfigure freely.

    Returns:
        The namespace root logger
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False
    logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    thread_filter = ThreadContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(thread_filter)
    logger.addHandler(console_handler)

    if enable_file_logging:
        if log_dir is None:
            log_dir = Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        app_log_file = log_dir / f"{app_name}.log"
        logger.addHandler(_rotating_handler(app_log_file, log_level, formatter, thread_filter))
        logger.addHandler(
            _rotating_handler(log_dir / f"{app_name}_error.log", logging.ERROR, formatter, thread_filter)
        )
        logger.info(f"File logging enabled: {app_log_file}")

    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


# =============================================================================
# LOGGER FACTORY FUNCTIONS
# =============================================================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the application namespace.

    ``services.job_workflow`` becomes ``print_shop_web.services.job_workflow``
    and inherits the handlers installed by setup_logging().
    """
    if not name.startswith(LOGGER_NAMESPACE):
        name = f"{LOGGER_NAMESPACE}.{name}"
    return logging.getLogger(name)


def get_job_logger(job_id: str) -> logging.Logger:
    """
    Get a logger dedicated to one print job.

    Only the first 8 characters of the id are used, which is enough to grep
    a job's status history out of the shared log.
    """
    short_id = str(job_id)[:8]
    return logging.getLogger(f"{LOGGER_NAMESPACE}.job.{short_id}")


def set_thread_name(name: str) -> None:
    """Rename the current thread; the name shows up in the [thread] column."""
    threading.current_thread().name = name
