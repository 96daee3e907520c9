"""Tests for setup_logging"""
import logging
from logging.handlers import RotatingFileHandler

import pytest

from src.shared.logging_config import setup_logging


class TestSetupLogging:
    """setup_logging is idempotent and writes to a rotating file"""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root_logger = logging.getLogger()
        handlers_before = list(root_logger.handlers)
        level_before = root_logger.level
        yield
        for handler in root_logger.handlers[:]:
            if handler not in handlers_before:
                root_logger.removeHandler(handler)
                handler.close()
        root_logger.setLevel(level_before)

    def _file_handlers(self, log_file):
        return [
            h for h in logging.getLogger().handlers
            if isinstance(h, RotatingFileHandler) and h.baseFilename == str(log_file.absolute())
        ]

    def test_creates_log_directory_and_file_handler(self, tmp_path):
        log_file = tmp_path / 'logs' / 'charter.log'

        setup_logging(str(log_file), max_bytes=1024, backup_count=2)

        handlers = self._file_handlers(log_file)
        assert len(handlers) == 1
        assert handlers[0].maxBytes == 1024
        assert handlers[0].backupCount == 2
        assert log_file.parent.is_dir()

    def test_repeated_calls_add_no_duplicate_handlers(self, tmp_path):
        log_file = tmp_path / 'charter.log'

        setup_logging(str(log_file))
        handler_count = len(logging.getLogger().handlers)
        setup_logging(str(log_file), level=logging.DEBUG)

        assert len(logging.getLogger().handlers) == handler_count
        assert logging.getLogger().level == logging.DEBUG

    def test_messages_reach_file(self, tmp_path):
        log_file = tmp_path / 'charter.log'
        setup_logging(str(log_file))

        logging.info("[consum] Unique store ids: 12")
        for handler in self._file_handlers(log_file):
            handler.flush()

        content = log_file.read_text(encoding='utf-8')
        assert "INFO - [consum] Unique store ids: 12" in content

    def test_quiets_urllib3(self, tmp_path):
        setup_logging(str(tmp_path / 'charter.log'), level=logging.DEBUG)
        assert logging.getLogger('urllib3').level == logging.WARNING
