"""
Re-keys legacy credential records into current-schema records.

A legacy record is keyed by owner id and carries a scalar owner; its
current-schema counterpart is keyed by the Fitbit user id and carries the
owner in its owner set. The migration only ever adds: it writes through
CredentialStore.upsert (so owners are unioned) and never modifies or
deletes the source record. Running it twice is a no-op for the data.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from ..schemas.token_record_schema import TokenRecord
from ..stores.credential_store import CredentialStore
from ..utils.logger import get_logger


class RecordClassification(str, Enum):
    """What the migration does with a record. Exactly one applies."""

    ALREADY_CURRENT = "already_current"
    INCOMPLETE = "incomplete"
    LEGACY = "legacy"


class OutcomeStatus(str, Enum):
    MIGRATED = "migrated"
    PLANNED = "planned"
    SKIPPED = "skipped"
    ERRORED = "errored"


class RecordOutcome(BaseModel):
    """Result of processing one record."""

    key: str
    classification: RecordClassification
    status: OutcomeStatus
    target_key: Optional[str] = None
    owner_id: Optional[str] = None
    external_id: Optional[str] = None
    error: Optional[str] = None


class MigrationReport(BaseModel):
    """Counters and per-record trace of one migration run."""

    dry_run: bool
    total: int = 0
    migrated: int = 0
    skipped: int = 0
    errored: int = 0
    outcomes: List[RecordOutcome] = Field(default_factory=list)

    def add(self, outcome: RecordOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status in (OutcomeStatus.MIGRATED, OutcomeStatus.PLANNED):
            self.migrated += 1
        elif outcome.status == OutcomeStatus.SKIPPED:
            self.skipped += 1
        else:
            self.errored += 1


def classify_record(record: TokenRecord, counterpart: Optional[TokenRecord] = None) -> RecordClassification:
    """
    Decide what the migration does with a record.

    A legacy record whose current-schema counterpart already lists its owner
    has been migrated before; re-merging it would overwrite tokens refreshed
    since then with the stale legacy copy.
    """
    if record.is_current_schema:
        return RecordClassification.ALREADY_CURRENT
    if not record.owner_id or not record.external_id:
        return RecordClassification.INCOMPLETE
    if counterpart is not None and record.owner_id in (counterpart.owners or ()):
        return RecordClassification.ALREADY_CURRENT
    return RecordClassification.LEGACY


class TokenMigrationService:
    """
    One-shot batch migration over a snapshot of the credential store.

    In dry-run mode every record is read and classified exactly as in apply
    mode; only the upsert is skipped.
    """

    def __init__(self, store: CredentialStore, dry_run: bool = True):
        self.store = store
        self.dry_run = dry_run
        self.logger = get_logger()

    def run(self) -> MigrationReport:
        """
        Migrate every legacy record in the store.

        Per-record failures are counted and logged and the batch continues.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the snapshot cannot be read
        """
        records = self.store.list_all()
        report = MigrationReport(dry_run=self.dry_run, total=len(records))

        self.logger.info(
            "Starting token migration",
            extra={"dry_run": self.dry_run, "record_count": len(records)},
        )

        for record in records:
            report.add(self.migrate_record(record))

        self.logger.info(
            "Token migration finished",
            extra={
                "dry_run": self.dry_run,
                "migrated": report.migrated,
                "skipped": report.skipped,
                "errored": report.errored,
                "total": report.total,
            },
        )
        return report

    def migrate_record(self, record: TokenRecord) -> RecordOutcome:
        outcome = RecordOutcome(
            key=record.key,
            classification=RecordClassification.INCOMPLETE,
            status=OutcomeStatus.SKIPPED,
            owner_id=record.owner_id,
            external_id=record.external_id,
        )

        try:
            counterpart = None
            if not record.is_current_schema and record.owner_id and record.external_id:
                counterpart = self.store.get(record.external_id)
            classification = classify_record(record, counterpart)
            outcome.classification = classification

            if classification != RecordClassification.LEGACY:
                self.logger.info(
                    "Skipping token record",
                    extra={
                        "key": record.key,
                        "classification": classification.value,
                        "owner_id": record.owner_id,
                        "external_id": record.external_id,
                    },
                )
                return outcome

            outcome.target_key = record.external_id
            self.logger.info(
                "Migrating token record",
                extra={
                    "key": record.key,
                    "target_key": outcome.target_key,
                    "owner_id": record.owner_id,
                    "dry_run": self.dry_run,
                },
            )

            if self.dry_run:
                outcome.status = OutcomeStatus.PLANNED
            else:
                self.store.upsert(
                    key=outcome.target_key,
                    external_id=record.external_id,
                    owners={record.owner_id},
                    token_fields=record.token_fields,
                )
                outcome.status = OutcomeStatus.MIGRATED
        except Exception as e:
            self.logger.error(
                "Failed to migrate token record",
                extra={"key": record.key, "target_key": outcome.target_key, "error_message": str(e)},
                exc_info=True,
            )
            outcome.status = OutcomeStatus.ERRORED
            outcome.error = str(e)

        return outcome
