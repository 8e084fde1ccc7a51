"""
Tests for logging configuration.
"""

import logging

from rich.logging import RichHandler

from docdrift.logging import configure_logging, get_logger


class TestLogging:
    """Tests for the docdrift logger hierarchy."""

    def teardown_method(self):
        logger = logging.getLogger("docdrift")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    def test_names(self):
        """Test module loggers live under the package logger."""
        assert get_logger().name == "docdrift"
        assert get_logger("snapshot").name == "docdrift.snapshot"

    def test_levels(self):
        """Test INFO by default and DEBUG when verbose."""
        assert configure_logging().level == logging.INFO
        assert configure_logging(verbose=True).level == logging.DEBUG

    def test_repeat_calls_do_not_duplicate_handlers(self):
        configure_logging()
        logger = configure_logging()

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)

    def test_file_sink(self, tmp_path):
        """Test that a log file receives formatted records."""
        log_file = tmp_path / "drift.log"
        logger = configure_logging(log_file=log_file)

        get_logger("test").warning("stale docs in %s", "api.md")
        for handler in logger.handlers:
            handler.flush()

        text = log_file.read_text(encoding="utf-8")
        assert "WARNING docdrift.test: stale docs in api.md" in text
