"""
Operator entry point for the legacy-to-current token migration.

Usage:
    fitbit-migrate-tokens --database-url postgresql://... [--mode apply]
    DATABASE_URL=... DRY_RUN=true python -m fitbit_token_bridge.cli.migrate_tokens

Runs in dry-run mode unless --mode apply is given, or DRY_RUN=false is set
and --mode is not. Existing records are never deleted; run against staging
and take a backup first.
"""

import argparse
import os
import sys
from typing import List, Optional, TextIO

from dotenv import load_dotenv

from ..config import DatabaseConfig
from ..constants import EnvironmentVariable, MigrationMode
from ..db.db_config import DatabaseManager, init_db
from ..migration.token_migration import (
    MigrationReport,
    OutcomeStatus,
    RecordClassification,
    RecordOutcome,
    TokenMigrationService,
)
from ..stores.credential_store import CredentialStore
from ..utils.logger import configure_logging

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fitbit-migrate-tokens",
        description="Re-key legacy Fitbit token records by Fitbit user id",
    )
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in MigrationMode],
        default=None,
        help="dry-run only reads and reports (default); apply writes the migrated records",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help=f"Target credential store (default: ${EnvironmentVariable.DATABASE_URL.value})",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create the credential tables before migrating (apply mode only)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Log level for structured logs (the trace below is always printed)",
    )
    return parser


def resolve_dry_run(mode: Optional[str]) -> bool:
    """--mode wins; otherwise only an explicit DRY_RUN=false turns writes on."""
    if mode is not None:
        return MigrationMode(mode) == MigrationMode.DRY_RUN
    return os.getenv(EnvironmentVariable.DRY_RUN.value, "true").lower() != "false"


def print_header(database: DatabaseConfig, dry_run: bool, out: TextIO) -> None:
    print("=== Fitbit token migration ===", file=out)
    print(f"Mode: {'DRY RUN (read only)' if dry_run else 'APPLY'}", file=out)
    print(f"Target store: {database.masked_url()}", file=out)
    print("", file=out)


def print_outcome(outcome: RecordOutcome, out: TextIO) -> None:
    print(f"Processing: key = {outcome.key}", file=out)
    if outcome.classification == RecordClassification.ALREADY_CURRENT:
        print("  -> skipped: already in current format", file=out)
    elif outcome.classification == RecordClassification.INCOMPLETE:
        print("  -> skipped: required fields are missing", file=out)
        print(f"    owner id: {outcome.owner_id or '(none)'}", file=out)
        print(f"    external id: {outcome.external_id or '(none)'}", file=out)
    else:
        print(f"  -> target: key = {outcome.target_key}", file=out)
        print(f"    owner id: {outcome.owner_id}", file=out)
        print(f"    external id: {outcome.external_id}", file=out)
        if outcome.status == OutcomeStatus.ERRORED:
            print(f"  x error: {outcome.error}", file=out)
        elif outcome.status == OutcomeStatus.PLANNED:
            print("  ok would migrate (dry run)", file=out)
        else:
            print("  ok migrated", file=out)
    print("", file=out)


def print_summary(report: MigrationReport, out: TextIO) -> None:
    print("=== Migration result ===", file=out)
    print(f"Migrated: {report.migrated}", file=out)
    print(f"Skipped: {report.skipped}", file=out)
    print(f"Errored: {report.errored}", file=out)
    print(f"Total: {report.total}", file=out)
    if report.dry_run:
        print("", file=out)
        print("This was a DRY RUN. No data was changed.", file=out)
        print("Run again with --mode apply to write the migrated records.", file=out)


def main(argv: Optional[List[str]] = None, out: Optional[TextIO] = None) -> int:
    out = out or sys.stdout
    load_dotenv()
    args = build_parser().parse_args(argv)

    database_url = args.database_url or os.getenv(EnvironmentVariable.DATABASE_URL.value)
    if not database_url:
        print(
            f"error: a target store is required (--database-url or ${EnvironmentVariable.DATABASE_URL.value})",
            file=sys.stderr,
        )
        print("usage: fitbit-migrate-tokens --database-url <url> [--mode dry-run|apply]", file=sys.stderr)
        return EXIT_FAILURE

    configure_logging("migrate_tokens", log_level=args.log_level, stream=sys.stderr)

    dry_run = resolve_dry_run(args.mode)
    if dry_run and args.create_tables:
        print("error: --create-tables writes to the store and is not allowed in dry-run mode", file=sys.stderr)
        return EXIT_FAILURE

    database = DatabaseConfig(url=database_url)
    print_header(database, dry_run, out)

    db_manager = DatabaseManager(database)
    try:
        if args.create_tables:
            init_db(db_manager)

        service = TokenMigrationService(CredentialStore(db_manager.session_factory), dry_run=dry_run)
        report = service.run()
    except Exception as e:
        print(f"Migration failed: {e}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        db_manager.close()

    if report.total == 0:
        print("No token records found.", file=out)
    for outcome in report.outcomes:
        print_outcome(outcome, out)
    print_summary(report, out)
    print("", file=out)
    print("Migration finished.", file=out)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
