"""Logging and secret helpers."""

from .logger import configure_logging, get_logger
from .secrets import EnvironmentSecretProvider, SecretProvider

__all__ = ["configure_logging", "get_logger", "EnvironmentSecretProvider", "SecretProvider"]
