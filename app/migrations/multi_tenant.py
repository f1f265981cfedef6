"""
Idempotent upgrade of a single-user database to the multi-tenant schema.

Every step inspects the current schema or data before changing it, so the
migration can be run any number of times; a second run finds nothing to do.
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.engine import Connection, Engine

from app.config import settings
from app.core.exceptions import MigrationError
from app.models.base import Base, utc_now
from app.models.role import TenantRole
from app.models.tenant import Tenant
from app.models.tenant_membership import TenantMembership
from app.models.invite_code import InviteCode  # noqa: F401  (registers the table)
from app.models.user import User
from app.models.voucher import Voucher
from app.models.reading import Reading
from app.services.tenant_service import default_tenant_name

logger = logging.getLogger(__name__)

# Columns legacy databases are missing, created as the models define them
# but without inline foreign keys (SQLite cannot ALTER constraints).
MISSING_COLUMNS = {
    "users": lambda: sa.Column(
        "is_super_admin", sa.Boolean(), nullable=False, server_default=sa.false()
    ),
    "vouchers": lambda: sa.Column("tenant_id", sa.Integer(), nullable=True),
    "readings": lambda: sa.Column("tenant_id", sa.Integer(), nullable=True),
}

TENANT_SCOPED_TABLES = (Voucher.__table__, Reading.__table__)


@dataclass
class MigrationReport:
    """What a migration run changed"""

    tables_created: list[str] = field(default_factory=list)
    columns_added: list[str] = field(default_factory=list)
    indexes_created: list[str] = field(default_factory=list)
    users_migrated: int = 0
    vouchers_backfilled: int = 0
    readings_backfilled: int = 0
    backup_path: str | None = None

    @property
    def changed(self) -> bool:
        return bool(
            self.tables_created
            or self.columns_added
            or self.indexes_created
            or self.users_migrated
            or self.vouchers_backfilled
            or self.readings_backfilled
        )


def create_missing_tables(conn: Connection, report: MigrationReport) -> None:
    inspector = sa.inspect(conn)
    for table in Base.metadata.sorted_tables:
        if inspector.has_table(table.name):
            continue
        table.create(conn)
        report.tables_created.append(table.name)
        logger.info("Created table %s", table.name)


def add_missing_columns(conn: Connection, report: MigrationReport, operations=None) -> None:
    inspector = sa.inspect(conn)
    ops = operations or Operations(MigrationContext.configure(conn))
    for table_name, make_column in MISSING_COLUMNS.items():
        column = make_column()
        existing = {col["name"] for col in inspector.get_columns(table_name)}
        if column.name in existing:
            continue

        ops.add_column(table_name, column)
        if column.name == "tenant_id" and conn.dialect.name != "sqlite":
            ops.create_foreign_key(
                f"fk_{table_name}_tenant_id",
                table_name,
                "tenants",
                ["tenant_id"],
                ["id"],
                ondelete="CASCADE",
            )
        report.columns_added.append(f"{table_name}.{column.name}")
        logger.info("Added column %s.%s", table_name, column.name)


def create_missing_indexes(conn: Connection, report: MigrationReport) -> None:
    inspector = sa.inspect(conn)
    for table in TENANT_SCOPED_TABLES:
        existing = {index["name"] for index in inspector.get_indexes(table.name)}
        for index in sorted(table.indexes, key=lambda ix: ix.name):
            if index.name in existing:
                continue
            index.create(conn)
            report.indexes_created.append(index.name)
            logger.info("Created index %s on %s", index.name, table.name)


def create_tenants_for_unassigned_users(conn: Connection, report: MigrationReport) -> None:
    """Give every user without a membership their own tenant, as ADMIN."""
    users = User.__table__
    tenants = Tenant.__table__
    memberships = TenantMembership.__table__

    unassigned = conn.execute(
        sa.select(users.c.id, users.c.email)
        .where(users.c.id.not_in(sa.select(memberships.c.user_id)))
        .order_by(users.c.id)
    ).all()

    for user_id, email in unassigned:
        now = utc_now()
        tenant_id = conn.execute(
            sa.insert(tenants).values(
                name=default_tenant_name(email),
                subscription_status=settings.DEFAULT_SUBSCRIPTION_STATUS,
                max_users=settings.DEFAULT_MAX_USERS,
                created_at=now,
                updated_at=now,
            )
        ).inserted_primary_key[0]
        conn.execute(
            sa.insert(memberships).values(
                tenant_id=tenant_id,
                user_id=user_id,
                role=TenantRole.ADMIN,
                joined_at=now,
            )
        )
        report.users_migrated += 1
        logger.info("Created tenant %s for user %s", tenant_id, user_id)


def backfill_tenant_ids(conn: Connection, report: MigrationReport) -> None:
    """
    Set tenant_id on vouchers/readings that have none.

    Each row gets the tenant of its user's earliest membership. Rows that
    already carry a tenant_id are never touched.
    """
    memberships = TenantMembership.__table__
    rows = conn.execute(
        sa.select(memberships.c.user_id, memberships.c.tenant_id).order_by(
            memberships.c.user_id, memberships.c.joined_at, memberships.c.id
        )
    ).all()

    primary: dict[int, int] = {}
    for user_id, tenant_id in rows:
        primary.setdefault(user_id, tenant_id)

    for user_id, tenant_id in primary.items():
        for table in TENANT_SCOPED_TABLES:
            result = conn.execute(
                sa.update(table)
                .where(table.c.user_id == user_id, table.c.tenant_id.is_(None))
                .values(tenant_id=tenant_id)
            )
            if table.name == "vouchers":
                report.vouchers_backfilled += result.rowcount
            else:
                report.readings_backfilled += result.rowcount

    if report.vouchers_backfilled or report.readings_backfilled:
        logger.info(
            "Backfilled tenant_id on %s vouchers and %s readings",
            report.vouchers_backfilled, report.readings_backfilled,
        )


def apply_multi_tenant_schema(
    conn: Connection, report: MigrationReport | None = None, operations=None
) -> MigrationReport:
    """
    Run every migration step on an open connection.

    The caller owns the transaction. Used by MultiTenantMigration and by
    the alembic revision that introduces tenants.
    """
    report = report or MigrationReport()
    create_missing_tables(conn, report)
    add_missing_columns(conn, report, operations)
    create_tenants_for_unassigned_users(conn, report)
    backfill_tenant_ids(conn, report)
    create_missing_indexes(conn, report)
    return report


class MultiTenantMigration:
    """
    Snapshot, migrate in one transaction, and restore the snapshot on failure.

    Usage:
        report = MultiTenantMigration(engine).run()
    """

    def __init__(self, engine: Engine, backup: bool = True):
        self.engine = engine
        self.backup = backup

    def sqlite_path(self) -> Path | None:
        """Path of a file-backed SQLite database, else None."""
        url = self.engine.url
        if url.get_backend_name() != "sqlite":
            return None
        database = url.database
        if not database or database == ":memory:" or database.startswith("file:"):
            return None
        return Path(database)

    def snapshot(self) -> str | None:
        path = self.sqlite_path()
        if path is None:
            logger.warning(
                "No file snapshot for %s databases; relying on the transaction only",
                self.engine.url.get_backend_name(),
            )
            return None
        if not path.exists():
            return None

        backup_path = path.with_name(f"{path.name}.backup.{utc_now().strftime('%Y%m%d%H%M%S%f')}")
        shutil.copy2(path, backup_path)
        logger.info("Database snapshot written to %s", backup_path)
        return str(backup_path)

    def restore(self, backup_path: str) -> None:
        path = self.sqlite_path()
        self.engine.dispose()
        shutil.copy2(backup_path, path)
        logger.info("Database restored from %s", backup_path)

    def run(self) -> MigrationReport:
        """
        Run the migration.

        Returns:
            MigrationReport describing what changed

        Raises:
            MigrationError: If any step failed; the transaction has been
                rolled back and the snapshot (if any) restored
        """
        report = MigrationReport()
        if self.backup:
            report.backup_path = self.snapshot()

        logger.info("Starting multi-tenant migration on %s", self.engine.url.render_as_string())
        try:
            with self.engine.begin() as conn:
                apply_multi_tenant_schema(conn, report)
        except Exception as e:
            logger.exception("Multi-tenant migration failed; rolling back")
            self.engine.dispose()
            if report.backup_path:
                self.restore(report.backup_path)
            raise MigrationError(f"Migration failed and was rolled back: {e}") from e

        if report.changed:
            logger.info(
                "Migration complete: %s tables, %s columns, %s indexes, %s users migrated",
                len(report.tables_created), len(report.columns_added),
                len(report.indexes_created), report.users_migrated,
            )
        else:
            logger.info("Migration complete: database already up to date")
        return report
