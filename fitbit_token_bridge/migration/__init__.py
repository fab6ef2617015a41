"""Legacy-to-current credential migration."""

from .token_migration import (
    MigrationReport,
    OutcomeStatus,
    RecordClassification,
    RecordOutcome,
    TokenMigrationService,
    classify_record,
)

__all__ = [
    "MigrationReport",
    "OutcomeStatus",
    "RecordClassification",
    "RecordOutcome",
    "TokenMigrationService",
    "classify_record",
]
