"""Services built on the credential store."""

from .token_lifecycle_service import TokenLifecycleService

__all__ = ["TokenLifecycleService"]
