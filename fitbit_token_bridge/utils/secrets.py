"""
Secret providers.

The webhook needs the Fitbit OAuth client id and secret. They are read by
name through a SecretProvider so the deployment can decide where they live;
the environment-backed provider covers Azure app settings and local runs.
"""

import os
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional

from ..exceptions import SecretAccessError
from .logger import get_logger


class SecretProvider(ABC):
    """Read-only access to named secrets."""

    @abstractmethod
    def get_secret(self, name: str) -> str:
        """
        Return the value of a secret.

        Raises:
            SecretAccessError: If the secret is missing or cannot be read
        """


class EnvironmentSecretProvider(SecretProvider):
    """Reads secrets from environment variables, optionally under a name prefix."""

    def __init__(self, prefix: str = "", environ: Optional[Mapping[str, str]] = None):
        self.prefix = prefix
        self.environ = environ if environ is not None else os.environ
        self.logger = get_logger()

    def get_secret(self, name: str) -> str:
        variable = f"{self.prefix}{name}"
        value = self.environ.get(variable)
        if not value:
            raise SecretAccessError(
                f"Failed to access secret {name}. Check configuration and permissions.",
                secret_name=name,
                variable=variable,
            )
        self.logger.debug("Secret loaded", extra={"secret_name": name})
        return value


def load_fitbit_client_credentials(
    provider: SecretProvider, client_id_name: str, client_secret_name: str
) -> Dict[str, str]:
    """Fetch the OAuth client id and secret; both must be present."""
    return {
        "client_id": provider.get_secret(client_id_name),
        "client_secret": provider.get_secret(client_secret_name),
    }
