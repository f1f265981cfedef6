"""
Command line entry point.

    python -m app.cli migrate [--database-url URL] [--no-backup]
"""

import argparse
import logging

from sqlalchemy import create_engine

from app.config import settings
from app.core.exceptions import MigrationError
from app.core.logging_config import configure_logging
from app.database import engine_kwargs
from app.migrations.multi_tenant import MultiTenantMigration

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="electricity-tracker")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL)
    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate = subparsers.add_parser(
        "migrate", help="Upgrade a single-user database to tenants (idempotent)"
    )
    migrate.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL")
    migrate.add_argument(
        "--no-backup", action="store_true", help="Skip the SQLite file snapshot"
    )
    return parser


def run_migrate(args: argparse.Namespace) -> int:
    database_url = args.database_url or settings.DATABASE_URL
    engine = create_engine(database_url, **engine_kwargs(database_url))
    try:
        report = MultiTenantMigration(engine, backup=not args.no_backup).run()
    except MigrationError as e:
        logger.error("%s", e)
        return 1
    finally:
        engine.dispose()

    print(
        f"tables_created={len(report.tables_created)} "
        f"columns_added={len(report.columns_added)} "
        f"indexes_created={len(report.indexes_created)} "
        f"users_migrated={report.users_migrated} "
        f"vouchers_backfilled={report.vouchers_backfilled} "
        f"readings_backfilled={report.readings_backfilled} "
        f"backup={report.backup_path or '-'}"
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "migrate":
        return run_migrate(args)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
