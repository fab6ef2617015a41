"""
Constants and enums for the Fitbit token bridge.

This module centralizes the magic strings and constants used throughout
the bridge so the webhook, the store and the migration agree on them.
"""

from enum import Enum


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    DATABASE_URL = "DATABASE_URL"
    LOG_LEVEL = "LOG_LEVEL"
    DRY_RUN = "DRY_RUN"
    FITBIT_REDIRECT_URI = "FITBIT_REDIRECT_URI"
    FITBIT_TOKEN_URL = "FITBIT_TOKEN_URL"
    FITBIT_API_BASE_URL = "FITBIT_API_BASE_URL"
    IDENTITY_JWT_KEY = "IDENTITY_JWT_KEY"
    IDENTITY_JWT_ALGORITHMS = "IDENTITY_JWT_ALGORITHMS"
    IDENTITY_AUDIENCE = "IDENTITY_AUDIENCE"
    IDENTITY_ISSUER = "IDENTITY_ISSUER"
    TOKEN_KEYING_SCHEME = "TOKEN_KEYING_SCHEME"
    STRICT_OWNER_LOOKUP = "STRICT_OWNER_LOOKUP"
    SECRET_PREFIX = "SECRET_PREFIX"


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class KeyingScheme(str, Enum):
    """
    How the live path keys credential records.

    LEGACY records are keyed by owner id and carry a scalar owner.
    CURRENT records are keyed by the Fitbit user id and carry a set of owners.
    """

    LEGACY = "legacy"
    CURRENT = "current"


class MigrationMode(str, Enum):
    """Run modes recognized by the token migration CLI."""

    DRY_RUN = "dry-run"
    APPLY = "apply"


class GrantType(str, Enum):
    """OAuth grant types sent to the Fitbit token endpoint."""

    AUTHORIZATION_CODE = "authorization_code"
    REFRESH_TOKEN = "refresh_token"


# Table names
TOKENS_TABLE = "fitbit_tokens"
TOKEN_OWNERS_TABLE = "fitbit_token_owners"

# Fitbit endpoints
FITBIT_TOKEN_URL = "https://api.fitbit.com/oauth2/token"
FITBIT_API_BASE_URL = "https://api.fitbit.com/1"

# Secret names holding the application's OAuth client credentials
FITBIT_CLIENT_ID_SECRET = "FITBIT_CLIENT_ID"
FITBIT_CLIENT_SECRET_SECRET = "FITBIT_CLIENT_SECRET"


class Timeouts:
    """Timeout values in seconds."""

    EXTERNAL_API_CALL = 30
