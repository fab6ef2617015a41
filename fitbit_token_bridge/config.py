"""
Centralized configuration management for the Fitbit token bridge.

Every section reads its defaults from environment variables so the same
models serve the Azure Functions host, the migration CLI and the tests.
"""

import os
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import (
    FITBIT_API_BASE_URL,
    FITBIT_CLIENT_ID_SECRET,
    FITBIT_CLIENT_SECRET_SECRET,
    FITBIT_TOKEN_URL,
    EnvironmentVariable,
    KeyingScheme,
    LogLevel,
    Timeouts,
)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


class DatabaseConfig(BaseModel):
    """Database connection configuration for the credential store."""

    url: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.DATABASE_URL.value, ""),
        description="SQLAlchemy database URL (the target store identifier); empty when not configured",
    )
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def masked_url(self) -> str:
        """Database URL with any password replaced by ***."""
        scheme, sep, rest = self.url.partition("://")
        if not sep or "@" not in rest:
            return self.url
        credentials, _, host = rest.rpartition("@")
        user = credentials.split(":", 1)[0]
        return f"{scheme}://{user}:***@{host}"

    def __repr__(self) -> str:
        """String representation with masked password for security."""
        return f"DatabaseConfig(url='{self.masked_url()}', echo={self.echo})"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class FitbitConfig(BaseModel):
    """Fitbit OAuth application and API settings."""

    redirect_uri: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.FITBIT_REDIRECT_URI.value, ""),
        description="Redirect URI registered with the Fitbit application",
    )
    token_url: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.FITBIT_TOKEN_URL.value, FITBIT_TOKEN_URL),
        description="OAuth token endpoint",
    )
    api_base_url: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.FITBIT_API_BASE_URL.value, FITBIT_API_BASE_URL
        ),
        description="Base URL of the Fitbit Web API",
    )
    client_id_secret_name: str = Field(
        default=FITBIT_CLIENT_ID_SECRET, description="Secret holding the OAuth client id"
    )
    client_secret_secret_name: str = Field(
        default=FITBIT_CLIENT_SECRET_SECRET, description="Secret holding the OAuth client secret"
    )
    request_timeout: int = Field(
        default=Timeouts.EXTERNAL_API_CALL, description="HTTP timeout for Fitbit calls (seconds)"
    )


class IdentityConfig(BaseModel):
    """Settings for verifying identity-provider bearer tokens."""

    jwt_key: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.IDENTITY_JWT_KEY.value, ""),
        description="Shared secret or PEM public key used to verify identity tokens",
    )
    algorithms: List[str] = Field(
        default_factory=lambda: [
            a.strip()
            for a in os.getenv(EnvironmentVariable.IDENTITY_JWT_ALGORITHMS.value, "RS256").split(",")
            if a.strip()
        ],
        description="Accepted JWT signing algorithms",
    )
    audience: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.IDENTITY_AUDIENCE.value) or None,
        description="Expected audience claim",
    )
    issuer: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.IDENTITY_ISSUER.value) or None,
        description="Expected issuer claim",
    )
    subject_claim: str = Field(default="sub", description="Claim holding the owner id")


class StoreConfig(BaseModel):
    """Credential store behavior."""

    keying_scheme: KeyingScheme = Field(
        default_factory=lambda: KeyingScheme(
            os.getenv(EnvironmentVariable.TOKEN_KEYING_SCHEME.value, KeyingScheme.CURRENT.value).lower()
        ),
        description="Keying scheme used by the live path",
    )
    strict_owner_lookup: bool = Field(
        default_factory=lambda: _env_flag(EnvironmentVariable.STRICT_OWNER_LOOKUP.value),
        description="Raise instead of picking one record when several claim an owner",
    )


class SecretsConfig(BaseModel):
    """Environment-backed secret provider settings."""

    prefix: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.SECRET_PREFIX.value, ""),
        description="Prefix prepended to secret names when reading the environment",
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    fitbit: FitbitConfig = Field(default_factory=FitbitConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the process configuration, building it from the environment on first use."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Replace the process configuration."""
    global _config
    _config = config


def reset_config() -> None:
    """Forget the process configuration so the next get_config() re-reads the environment."""
    global _config
    _config = None
