"""
Unit tests for logger utilities.
"""

import logging
from io import StringIO
from unittest.mock import Mock

from fitbit_token_bridge.exceptions import clear_correlation_id, set_correlation_id
from fitbit_token_bridge.utils.logger import (
    ContextAwareLogger,
    configure_logging,
    get_logger,
    reset_logging,
)


class TestContextAwareLogger:
    """Test ContextAwareLogger functionality."""

    def setup_method(self):
        """Set up test fixtures."""
        self.mock_logger = Mock(spec=logging.Logger)
        self.context_logger = ContextAwareLogger(self.mock_logger)

    def test_no_extras(self):
        """Test logging without extra data leaves the message alone."""
        self.context_logger.info("Test message")
        self.mock_logger.info.assert_called_once_with("Test message", extra={})

    def test_extras_formatted_into_message(self):
        """Test extras are appended as pipe-delimited pairs and still passed through."""
        extra = {"owner_id": "u1", "key": "f1"}

        self.context_logger.error("Saved token record", extra=extra)

        self.mock_logger.error.assert_called_once_with(
            "Saved token record | owner_id=u1 | key=f1", extra=extra
        )

    def test_exc_info_passed_through(self):
        self.context_logger.error("Failed", extra={"key": "u1"}, exc_info=True)

        self.mock_logger.error.assert_called_once_with("Failed | key=u1", extra={"key": "u1"}, exc_info=True)

    def test_levels(self):
        for level in ("debug", "warning", "exception"):
            getattr(self.context_logger, level)("msg")
            getattr(self.mock_logger, level).assert_called_once_with("msg", extra={})


class TestConfigureLogging:
    """Test configure_logging and get_logger."""

    def teardown_method(self):
        reset_logging()
        clear_correlation_id()

    def test_writes_to_stream(self):
        stream = StringIO()

        logger = configure_logging("fitbit_webhook", log_level="INFO", stream=stream)
        logger.info("Refreshed access token", extra={"owner_id": "u1"})

        assert "Refreshed access token | owner_id=u1" in stream.getvalue()

    def test_level_filters(self):
        stream = StringIO()

        logger = configure_logging("migrate_tokens", log_level="WARNING", stream=stream)
        logger.info("hidden")
        logger.warning("shown")

        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_named_logger_does_not_propagate(self):
        configure_logging("fitbit_webhook", log_level="INFO", stream=StringIO())

        underlying = logging.getLogger("function.fitbit_webhook")
        assert underlying.propagate is False
        assert len(underlying.handlers) == 1

    def test_reconfigure_replaces_handler(self):
        configure_logging("fitbit_webhook", log_level="INFO", stream=StringIO())
        configure_logging("fitbit_webhook", log_level="INFO", stream=StringIO())

        assert len(logging.getLogger("function.fitbit_webhook").handlers) == 1

    def test_get_logger_returns_configured_logger(self):
        configured = configure_logging("fitbit_webhook", log_level="INFO", stream=StringIO())
        assert get_logger() is configured

    def test_get_logger_falls_back_to_root(self):
        logger = get_logger()
        assert isinstance(logger, ContextAwareLogger)
        assert logger.logger is logging.getLogger()

    def test_correlation_id_attached_to_records(self):
        records = []

        class Capture(logging.Handler):
            def emit(self, record):
                records.append(record)

        configure_logging("fitbit_webhook", log_level="INFO", stream=StringIO())
        underlying = logging.getLogger("function.fitbit_webhook")
        capture = Capture()
        capture.addFilter(underlying.handlers[0].filters[0])
        underlying.addHandler(capture)

        set_correlation_id("corr-9")
        get_logger().info("hello")

        assert records[0].correlation_id == "corr-9"
