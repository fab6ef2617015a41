"""Request authentication."""

from .identity import IdentityVerifier, JWTIdentityVerifier, extract_bearer_token

__all__ = ["IdentityVerifier", "JWTIdentityVerifier", "extract_bearer_token"]
