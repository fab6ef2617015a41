"""Fitbit webhook: OAuth token lifecycle, food logging and the token re-keying migration."""

__version__ = "0.2.0"
