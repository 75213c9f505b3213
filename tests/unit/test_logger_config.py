"""Tests for logging setup."""

import logging
import logging.handlers
import tempfile
from pathlib import Path

from src.utils.logger_config import get_logger, setup_logging


class TestLoggerConfig:

    def setup_method(self):
        self.root = logging.getLogger()
        self.original_handlers = list(self.root.handlers)
        self.original_level = self.root.level

    def teardown_method(self):
        for handler in self.root.handlers:
            handler.close()
        self.root.handlers = self.original_handlers
        self.root.setLevel(self.original_level)

    def test_file_handlers_created(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_logging(log_level=logging.DEBUG, log_dir=temp_dir, console_output=False)

            file_handlers = [h for h in self.root.handlers
                             if isinstance(h, logging.handlers.RotatingFileHandler)]
            assert len(file_handlers) == 2
            assert (Path(temp_dir) / "chat_core.log").exists()
            assert (Path(temp_dir) / "errors.log").exists()

            for handler in self.root.handlers:
                handler.close()
            self.root.handlers = []

    def test_console_only(self):
        setup_logging(log_level=logging.WARNING, file_output=False)

        assert self.root.level == logging.WARNING
        assert len(self.root.handlers) == 1
        assert isinstance(self.root.handlers[0], logging.StreamHandler)

    def test_get_logger(self):
        assert get_logger("src.storage.kv_store").name == "src.storage.kv_store"
