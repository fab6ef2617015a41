"""
Token lifecycle service.

Exchanges authorization codes, refreshes access tokens and decides when a
refresh is due. Every write goes through CredentialStore's merge-upsert, so
a refresh racing the migration (or another refresh) can only add owners,
never drop them.
"""

import time
from typing import Callable, Optional, Tuple

from ..clients.fitbit_client import FitbitOAuthClient
from ..constants import KeyingScheme
from ..exceptions import AuthenticationError, DataIntegrityError, ExternalApiError
from ..schemas.token_record_schema import TokenRecord, TokenResponse
from ..stores.credential_store import CredentialStore
from ..utils.logger import get_logger


def epoch_millis() -> int:
    return int(time.time() * 1000)


class TokenLifecycleService:
    """
    Per-owner token state machine: no record -> valid -> expired -> valid.

    No retries and no background refresh; a refresh only happens when a
    caller asks for a token that has expired.
    """

    def __init__(
        self,
        store: CredentialStore,
        oauth_client: FitbitOAuthClient,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Initialize the service.

        Args:
            store: Credential store every write goes through
            oauth_client: Client for the Fitbit token endpoint
            clock: Returns the current time in epoch milliseconds
        """
        self.store = store
        self.oauth_client = oauth_client
        self.clock = clock or epoch_millis
        self.logger = get_logger()

    def exchange_code(self, code: str, owner_id: str) -> TokenRecord:
        """
        Complete the OAuth flow for an owner.

        Raises:
            ExternalApiError: If the token endpoint rejects the code; nothing is written
        """
        try:
            response = self.oauth_client.exchange_code(code)
        except ExternalApiError as e:
            e.add_context(owner_id=owner_id, operation="exchange_code")
            raise

        record = self._save(owner_id, response.user_id, response)
        self.logger.info(
            "Stored tokens after code exchange",
            extra={"owner_id": owner_id, "external_id": response.user_id, "key": record.key},
        )
        return record

    def refresh(self, owner_id: str) -> TokenRecord:
        """
        Refresh the owner's access token.

        The stored external id is kept even if the provider answers with a
        different user id.

        Raises:
            AuthenticationError: If the owner has no record or no refresh token
            ExternalApiError: If the refresh is rejected; the stored record is untouched
        """
        record = self.store.get_by_owner(owner_id)
        if record is None or not record.refresh_token:
            raise AuthenticationError(
                f"No refresh token found for user {owner_id}. Please re-authenticate.",
                owner_id=owner_id,
                operation="refresh",
            )

        try:
            response = self.oauth_client.refresh(record.refresh_token)
        except ExternalApiError as e:
            e.add_context(owner_id=owner_id, operation="refresh", key=record.key)
            raise

        external_id = record.external_id or response.user_id
        refreshed = self._save(owner_id, external_id, response)
        self.logger.info(
            "Refreshed access token",
            extra={"owner_id": owner_id, "key": refreshed.key, "expires_at": refreshed.expires_at},
        )
        return refreshed

    def is_token_usable(self, record: TokenRecord, now_ms: Optional[int] = None) -> bool:
        if record.expires_at is None or not record.access_token:
            return False
        now = self.clock() if now_ms is None else now_ms
        return now < record.expires_at

    def get_valid_access_token(self, owner_id: str) -> Tuple[str, str]:
        """
        Access token and external id to call the Fitbit API with.

        Refreshes exactly once when the stored token has expired.

        Raises:
            AuthenticationError: If the owner has never completed the OAuth flow
            DataIntegrityError: If the record has no external id
        """
        record = self.store.get_by_owner(owner_id)
        if record is None:
            raise AuthenticationError(
                f"No tokens found for user {owner_id}. Please complete the OAuth flow.",
                owner_id=owner_id,
                operation="get_valid_access_token",
            )

        if not self.is_token_usable(record):
            self.logger.info("Access token expired, refreshing", extra={"owner_id": owner_id})
            record = self.refresh(owner_id)

        if not record.external_id:
            raise DataIntegrityError(
                f"Token record {record.key} has no external id",
                owner_id=owner_id,
                key=record.key,
            )

        return record.access_token, record.external_id

    def _save(self, owner_id: str, external_id: str, response: TokenResponse) -> TokenRecord:
        token_fields = response.to_token_fields(self.clock())
        if self.store.keying_scheme == KeyingScheme.LEGACY:
            return self.store.upsert_legacy(owner_id, external_id, token_fields)
        return self.store.upsert(
            key=external_id,
            external_id=external_id,
            owners={owner_id},
            token_fields=token_fields,
        )
