"""
Identity verification for webhook requests.

The caller signs in with an external identity provider and sends the
resulting JWT as a bearer token; its subject claim is the owner id that
credential records are filed under.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import jwt

from ..config import IdentityConfig
from ..exceptions import AuthenticationError
from ..utils.logger import get_logger

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an `Authorization: Bearer <token>` header value.

    Raises:
        AuthenticationError: If the header is missing or not a bearer header
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError("Unauthorized: No token provided.")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError("Unauthorized: No token provided.")
    return token


class IdentityVerifier(ABC):
    """Turns a bearer token into the owner id it was issued for."""

    @abstractmethod
    def verify(self, bearer_token: str) -> str:
        """
        Return the owner id for a verified token.

        Raises:
            AuthenticationError: If the token is missing, expired or invalid
        """


class JWTIdentityVerifier(IdentityVerifier):
    """Verifies identity-provider JWTs with PyJWT."""

    def __init__(
        self,
        key: str,
        algorithms: Optional[List[str]] = None,
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
        subject_claim: str = "sub",
    ):
        self.key = key
        self.algorithms = algorithms or ["RS256"]
        self.audience = audience
        self.issuer = issuer
        self.subject_claim = subject_claim
        self.logger = get_logger()

    @classmethod
    def from_config(cls, config: IdentityConfig) -> "JWTIdentityVerifier":
        return cls(
            key=config.jwt_key,
            algorithms=config.algorithms,
            audience=config.audience,
            issuer=config.issuer,
            subject_claim=config.subject_claim,
        )

    def verify(self, bearer_token: str) -> str:
        if not bearer_token:
            raise AuthenticationError("Unauthorized: No token provided.")

        try:
            claims = jwt.decode(
                bearer_token,
                self.key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options={"require": ["exp", self.subject_claim], "verify_aud": self.audience is not None},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Unauthorized: Token expired.", cause=e)
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("Unauthorized: Invalid token.", cause=e)

        owner_id = claims.get(self.subject_claim)
        if not owner_id or not isinstance(owner_id, str):
            raise AuthenticationError("Unauthorized: Invalid token.", claim=self.subject_claim)

        self.logger.debug("Identity token verified", extra={"owner_id": owner_id})
        return owner_id
