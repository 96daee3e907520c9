"""Logging configuration and setup.

Root-logger configuration with a rotating log file and console output.
"""

import logging
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path

from src.shared.constants import LOGGING

__all__ = [
    'LOG_FORMAT',
    'setup_logging',
]

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# Guards handler setup against duplicate handlers
_logging_lock = threading.Lock()


def setup_logging(
    log_file: str = LOGGING.LOG_FILE,
    level: int = logging.INFO,
    max_bytes: int = LOGGING.MAX_BYTES,
    backup_count: int = LOGGING.BACKUP_COUNT,
) -> None:
    """Setup root logging with a rotating file and the console.

    Idempotent: calling it again adds no duplicate handlers, it only
    updates the level.

    Args:
        log_file: Path to log file
        level: Root log level
        max_bytes: Maximum file size before rotation (default: 10MB)
        backup_count: Number of backup files to keep (default: 5)
    """
    with _logging_lock:
        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        log_path = Path(log_file)

        has_file_handler = any(
            isinstance(h, RotatingFileHandler) and h.baseFilename == str(log_path.absolute())
            for h in root_logger.handlers
        )
        # FileHandler is the base class of every file handler
        has_console_handler = any(
            isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
            for h in root_logger.handlers
        )

        formatter = logging.Formatter(LOG_FORMAT)

        if not has_file_handler:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8',
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        if not has_console_handler:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)

        # Per-request connection chatter from urllib3 drowns out progress lines
        logging.getLogger('urllib3').setLevel(max(level, logging.WARNING))
