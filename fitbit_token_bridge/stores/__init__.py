"""Persistence adapters."""

from .credential_store import CredentialStore

__all__ = ["CredentialStore"]
