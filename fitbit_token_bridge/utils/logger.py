"""
Logging for the webhook and the migration CLI.

Console output goes through ContextAwareLogger so that `extra` values show up
as pipe-delimited pairs even when the Azure Functions host replaces the
formatters. Token values must never be passed in `extra`.
"""

import logging
import sys
from typing import Optional, Union

from ..config import get_config

_function_logger = None


class ContextAwareLogger:
    """
    Logger wrapper that formats extra attributes in message while preserving them.

    This ensures extras appear in console output even when Azure Functions
    overrides the formatters.
    """

    def __init__(self, logger):
        """Initialize with an existing logger."""
        self.logger = logger

    def _log_with_formatted_extra(self, level, msg, **kwargs):
        extra = kwargs.pop("extra", {})

        if extra:
            extra_str = " | ".join([f"{k}={v}" for k, v in extra.items()])
            full_msg = f"{msg} | {extra_str}"
        else:
            full_msg = msg

        log_method = getattr(self.logger, level)
        log_method(full_msg, extra=extra, **kwargs)

    def info(self, msg, **kwargs):
        self._log_with_formatted_extra("info", msg, **kwargs)

    def error(self, msg, **kwargs):
        self._log_with_formatted_extra("error", msg, **kwargs)

    def warning(self, msg, **kwargs):
        self._log_with_formatted_extra("warning", msg, **kwargs)

    def debug(self, msg, **kwargs):
        self._log_with_formatted_extra("debug", msg, **kwargs)

    def exception(self, msg, **kwargs):
        self._log_with_formatted_extra("exception", msg, **kwargs)


class CorrelationIdFilter(logging.Filter):
    """Adds the current correlation id (if any) to every log record."""

    def filter(self, record):
        # Lazy import, exceptions imports this module lazily as well
        from ..exceptions import get_correlation_id

        correlation_id = get_correlation_id()
        if correlation_id:
            record.correlation_id = correlation_id

        return True


def _resolve_level(log_level: Optional[Union[int, str]]) -> int:
    if log_level is None:
        log_level = get_config().logging.level
    if isinstance(log_level, str):
        return getattr(logging, log_level.upper(), logging.INFO)
    return log_level


def configure_logging(
    function_name: str,
    log_level: Optional[Union[int, str]] = None,
    stream=None,
) -> ContextAwareLogger:
    """
    Configure console logging for a function or script.

    Args:
        function_name: Name of the function or script; the logger is "function.<name>"
        log_level: Logging level (default: from config)
        stream: Output stream (default: stdout)

    Returns:
        The configured logger wrapped with ContextAwareLogger
    """
    global _function_logger

    level = _resolve_level(log_level)

    logger = logging.getLogger(f"function.{function_name}")
    logger.setLevel(level)
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.addFilter(CorrelationIdFilter())
    logger.addHandler(console_handler)

    wrapped_logger = ContextAwareLogger(logger)
    wrapped_logger.debug("Function logger configured", extra={"function_name": function_name})
    _function_logger = wrapped_logger
    return wrapped_logger


def get_logger(log_level: Optional[Union[int, str]] = None) -> ContextAwareLogger:
    """
    Get the function logger, or a wrapped root logger when none was configured.

    Args:
        log_level: Optional log level to set on the fallback logger
    """
    if _function_logger is not None:
        return _function_logger

    logger = logging.getLogger()
    logger.setLevel(_resolve_level(log_level))
    return ContextAwareLogger(logger)


def reset_logging() -> None:
    """Drop the configured function logger so get_logger() falls back to the root logger."""
    global _function_logger
    _function_logger = None
