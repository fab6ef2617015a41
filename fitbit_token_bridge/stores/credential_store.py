"""
Credential store adapter.

Owns the credential schema and the only write primitive the rest of the
bridge uses: a merge-upsert that overwrites the scalar token fields and
unions the owner set. Both the live token path and the migration write
through it, which is what lets them run side by side.

Store failures (SQLAlchemyError) are not caught or wrapped here, with one
exception: an IntegrityError from losing a first-insert race is handled by
re-running the merge once against the row the other writer created.
"""

from typing import Callable, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..constants import KeyingScheme
from ..db.db_token_models import FitbitTokenOwner, FitbitTokenRecord
from ..exceptions import DataIntegrityError, ErrorCode, ValidationError
from ..schemas.token_record_schema import TokenFields, TokenRecord
from ..utils.logger import get_logger


class CredentialStore:
    """
    Point lookups, snapshot enumeration and merge-upserts over fitbit_tokens.

    The keying scheme only changes how `get_by_owner` finds a record:
    LEGACY looks the owner id up as the primary key, CURRENT goes through
    the owner index.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        keying_scheme: KeyingScheme = KeyingScheme.CURRENT,
        strict_owner_lookup: bool = False,
    ):
        self.session_factory = session_factory
        self.keying_scheme = KeyingScheme(keying_scheme)
        self.strict_owner_lookup = strict_owner_lookup
        self.logger = get_logger()

    def get(self, key: str) -> Optional[TokenRecord]:
        """Point lookup by primary key."""
        with self.session_factory() as session:
            row = session.get(FitbitTokenRecord, key)
            if row is None:
                return None
            return TokenRecord.from_row(row)

    def get_by_owner(self, owner_id: str) -> Optional[TokenRecord]:
        """
        Find the record that belongs to an owner.

        Returns:
            The record, or None if the owner has none

        Raises:
            DataIntegrityError: If several records claim the owner and
                strict_owner_lookup is enabled
        """
        if self.keying_scheme == KeyingScheme.LEGACY:
            return self.get(owner_id)

        with self.session_factory() as session:
            rows = (
                session.query(FitbitTokenRecord)
                .join(FitbitTokenOwner, FitbitTokenOwner.record_key == FitbitTokenRecord.key)
                .filter(FitbitTokenOwner.owner_id == owner_id)
                .order_by(FitbitTokenRecord.key)
                .all()
            )
            records = [TokenRecord.from_row(row) for row in rows]

        if not records:
            self.logger.info("No token record found for owner", extra={"owner_id": owner_id})
            return None

        if len(records) > 1:
            keys = [record.key for record in records]
            self.logger.error(
                "Several token records claim one owner",
                extra={"owner_id": owner_id, "record_keys": keys},
            )
            if self.strict_owner_lookup:
                raise DataIntegrityError(
                    f"{len(keys)} token records claim owner {owner_id}",
                    owner_id=owner_id,
                    record_keys=keys,
                    operation="get_by_owner",
                )

        return records[0]

    def list_all(self) -> List[TokenRecord]:
        """Read every record in one unbounded snapshot, ordered by key."""
        with self.session_factory() as session:
            rows = session.query(FitbitTokenRecord).order_by(FitbitTokenRecord.key).all()
            return [TokenRecord.from_row(row) for row in rows]

    def upsert(
        self,
        key: str,
        external_id: str,
        owners: Iterable[str],
        token_fields: TokenFields,
    ) -> TokenRecord:
        """
        Create or merge a current-schema record.

        Scalar fields (tokens, expiry, external id) are overwritten; `owners`
        is unioned with whatever the record already holds.

        Raises:
            ValidationError: If key is empty or owners is empty
        """
        owner_set = frozenset(o for o in owners if o)
        if not key:
            raise ValidationError("key must be a non-empty string", field="key",
                                  error_code=ErrorCode.MISSING_REQUIRED)
        if not owner_set:
            raise ValidationError("owners must contain at least one owner id", field="owners",
                                  error_code=ErrorCode.MISSING_REQUIRED, key=key)

        def apply(row: FitbitTokenRecord) -> None:
            row.external_id = external_id
            row.access_token = token_fields.access_token
            row.refresh_token = token_fields.refresh_token
            row.expires_at = token_fields.expires_at
            existing = {owner.owner_id for owner in row.owners}
            for owner_id in sorted(owner_set - existing):
                row.owners.append(FitbitTokenOwner(owner_id=owner_id))

        record = self._merge_write(key, apply)
        self.logger.info(
            "Saved token record",
            extra={"key": key, "external_id": external_id, "owner_count": len(record.owners or ())},
        )
        return record

    def upsert_legacy(self, owner_id: str, external_id: str, token_fields: TokenFields) -> TokenRecord:
        """
        Create or merge a legacy-schema record keyed by owner id.

        Only the scalar fields are written; an owner set is never created.
        """
        if not owner_id:
            raise ValidationError("owner_id must be a non-empty string", field="owner_id",
                                  error_code=ErrorCode.MISSING_REQUIRED)

        def apply(row: FitbitTokenRecord) -> None:
            row.owner_id = owner_id
            row.external_id = external_id
            row.access_token = token_fields.access_token
            row.refresh_token = token_fields.refresh_token
            row.expires_at = token_fields.expires_at

        record = self._merge_write(owner_id, apply)
        self.logger.info("Saved legacy token record", extra={"key": owner_id, "external_id": external_id})
        return record

    def _merge_write(self, key: str, apply: Callable[[FitbitTokenRecord], None]) -> TokenRecord:
        try:
            return self._merge_write_once(key, apply)
        except IntegrityError:
            # Another writer inserted the row or an owner row first; merge into theirs
            self.logger.warning("Concurrent insert detected, merging into existing record",
                                extra={"key": key})
            return self._merge_write_once(key, apply)

    def _merge_write_once(self, key: str, apply: Callable[[FitbitTokenRecord], None]) -> TokenRecord:
        with self.session_factory() as session:
            with session.begin():
                row = session.get(FitbitTokenRecord, key, with_for_update=True)
                if row is None:
                    row = FitbitTokenRecord(key=key)
                    session.add(row)
                apply(row)
            return TokenRecord.from_row(row)
