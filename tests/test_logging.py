"""Tests for structured logging setup."""

import logging
import sys
from pathlib import Path

from codescribe.utils.logging import setup_logging


class TestSetupLogging:
    """Tests for the setup_logging function."""

    def test_returns_package_logger(self) -> None:
        logger = setup_logging()
        assert isinstance(logger, logging.Logger)
        assert logger.name == "codescribe"

    def test_default_level_is_info(self) -> None:
        logger = setup_logging()
        assert logger.level == logging.INFO

    def test_custom_level(self) -> None:
        logger = setup_logging(level="DEBUG")
        assert logger.level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self) -> None:
        logger = setup_logging(level="LOUD")
        assert logger.level == logging.INFO

    def test_console_handler_writes_to_stderr(self) -> None:
        logger = setup_logging()
        streams = [h.stream for h in logger.handlers if type(h) is logging.StreamHandler]
        assert streams == [sys.stderr]

    def test_file_handler_when_path_given(self, tmp_path: Path) -> None:
        logger = setup_logging(log_file=str(tmp_path / "test.log"))
        handler_types = [type(h) for h in logger.handlers]
        assert logging.FileHandler in handler_types

    def test_no_file_handler_by_default(self) -> None:
        logger = setup_logging()
        handler_types = [type(h) for h in logger.handlers]
        assert logging.FileHandler not in handler_types

    def test_clears_existing_handlers(self) -> None:
        logger = setup_logging()
        initial_count = len(logger.handlers)
        logger = setup_logging()
        assert len(logger.handlers) == initial_count

    def test_module_loggers_reach_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "test.log"
        logger = setup_logging(level="INFO", log_file=str(log_file))
        logging.getLogger("codescribe.analysis.analyzer").warning("degraded src/a.ts")
        for handler in logger.handlers:
            handler.flush()
        assert "degraded src/a.ts" in log_file.read_text()
