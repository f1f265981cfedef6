from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text

from app.cli import main
from app.core.exceptions import MigrationError
from app.migrations import multi_tenant
from app.migrations.multi_tenant import MultiTenantMigration

PROJECT_ROOT = Path(__file__).resolve().parent.parent

LEGACY_SCHEMA = [
    """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email VARCHAR(255) NOT NULL UNIQUE,
        password_hash VARCHAR(255) NOT NULL,
        created_at DATETIME NOT NULL,
        updated_at DATETIME NOT NULL
    )
    """,
    """
    CREATE TABLE vouchers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL REFERENCES users(id),
        token_number VARCHAR(64) NOT NULL,
        purchase_date DATE NOT NULL,
        amount NUMERIC(12, 2) NOT NULL,
        kwh_amount NUMERIC(12, 2) NOT NULL,
        vat_amount NUMERIC(12, 2) NOT NULL,
        notes TEXT,
        created_at DATETIME NOT NULL,
        updated_at DATETIME NOT NULL
    )
    """,
    """
    CREATE TABLE readings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL REFERENCES users(id),
        reading_value NUMERIC(12, 2) NOT NULL,
        reading_date DATE NOT NULL,
        notes TEXT,
        created_at DATETIME NOT NULL,
        updated_at DATETIME NOT NULL
    )
    """,
]

LEGACY_EMAILS = ["ann@example.com", "ben@example.com", "cat@example.com"]


def seed_legacy_data(conn) -> None:
    """Three users, each with two vouchers and two readings"""
    for email in LEGACY_EMAILS:
        user_id = conn.execute(
            text(
                "INSERT INTO users (email, password_hash, created_at, updated_at) "
                "VALUES (:email, 'hash', '2025-01-01 00:00:00', '2025-01-01 00:00:00')"
            ),
            {"email": email},
        ).lastrowid
        for n in range(2):
            conn.execute(
                text(
                    "INSERT INTO vouchers (user_id, token_number, purchase_date, amount, kwh_amount, "
                    "vat_amount, created_at, updated_at) VALUES (:user_id, :token, '2025-02-0' || :day, "
                    "100, 40, 15, '2025-02-01 00:00:00', '2025-02-01 00:00:00')"
                ),
                {"user_id": user_id, "token": f"{email}-{n}", "day": n + 1},
            )
            conn.execute(
                text(
                    "INSERT INTO readings (user_id, reading_value, reading_date, created_at, updated_at) "
                    "VALUES (:user_id, :value, '2025-03-0' || :day, '2025-03-01 00:00:00', "
                    "'2025-03-01 00:00:00')"
                ),
                {"user_id": user_id, "value": 1000 + n, "day": n + 1},
            )


def snapshot(engine) -> dict:
    """Row counts and tenant assignments"""
    with engine.connect() as conn:
        return {
            "tenants": conn.execute(text("SELECT id, name FROM tenants ORDER BY id")).all(),
            "memberships": conn.execute(
                text("SELECT tenant_id, user_id, role FROM tenant_users ORDER BY user_id")
            ).all(),
            "vouchers": conn.execute(text("SELECT id, user_id, tenant_id FROM vouchers ORDER BY id")).all(),
            "readings": conn.execute(text("SELECT id, user_id, tenant_id FROM readings ORDER BY id")).all(),
        }


@pytest.fixture
def legacy_db(tmp_path):
    """File-backed SQLite database in the single-user schema"""
    path = tmp_path / "legacy.db"
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as conn:
        for ddl in LEGACY_SCHEMA:
            conn.execute(text(ddl))
        seed_legacy_data(conn)
    yield engine, path
    engine.dispose()


class TestMultiTenantMigration:
    """MultiTenantMigration against a legacy database"""

    def test_each_user_gets_own_tenant(self, legacy_db):
        """3 users -> 3 tenants, 3 admin memberships, every row backfilled"""
        engine, _ = legacy_db

        report = MultiTenantMigration(engine).run()

        assert report.users_migrated == 3
        assert report.vouchers_backfilled == 6
        assert report.readings_backfilled == 6
        assert set(report.tables_created) == {"tenants", "tenant_users", "invite_codes"}
        assert set(report.columns_added) == {
            "users.is_super_admin",
            "vouchers.tenant_id",
            "readings.tenant_id",
        }

        state = snapshot(engine)
        assert [name for _, name in state["tenants"]] == [f"{email}'s Family" for email in LEGACY_EMAILS]
        assert len(state["memberships"]) == 3
        assert all(role == "admin" for _, _, role in state["memberships"])

        tenant_of = {user_id: tenant_id for tenant_id, user_id, _ in state["memberships"]}
        assert len(set(tenant_of.values())) == 3
        for rows in (state["vouchers"], state["readings"]):
            for _, user_id, tenant_id in rows:
                assert tenant_id == tenant_of[user_id]

    def test_rerun_changes_nothing(self, legacy_db):
        """Running twice gives the same rows as running once"""
        engine, _ = legacy_db

        MultiTenantMigration(engine).run()
        first = snapshot(engine)
        second_report = MultiTenantMigration(engine).run()

        assert not second_report.changed
        assert snapshot(engine) == first

    def test_creates_tenant_indexes(self, legacy_db):
        """Tenant indexes exist after migration"""
        engine, _ = legacy_db

        MultiTenantMigration(engine).run()

        inspector = inspect(engine)
        voucher_indexes = {ix["name"] for ix in inspector.get_indexes("vouchers")}
        reading_indexes = {ix["name"] for ix in inspector.get_indexes("readings")}
        assert {"ix_vouchers_tenant_id", "ix_vouchers_tenant_date", "uq_vouchers_tenant_token"} <= voucher_indexes
        assert {"ix_readings_tenant_id", "uq_readings_tenant_date"} <= reading_indexes

    def test_backfills_rows_written_after_migration(self, legacy_db):
        """Rows left without tenant_id by old code are repaired on rerun"""
        engine, _ = legacy_db
        MultiTenantMigration(engine).run()
        with engine.begin() as conn:
            conn.execute(
                text(
                    "INSERT INTO vouchers (user_id, token_number, purchase_date, amount, kwh_amount, "
                    "vat_amount, created_at, updated_at) VALUES (2, 'late', '2025-04-01', 10, 4, 0, "
                    "'2025-04-01 00:00:00', '2025-04-01 00:00:00')"
                )
            )

        report = MultiTenantMigration(engine).run()

        assert report.users_migrated == 0
        assert report.vouchers_backfilled == 1
        state = snapshot(engine)
        tenant_of = {user_id: tenant_id for tenant_id, user_id, _ in state["memberships"]}
        assert state["vouchers"][-1][2] == tenant_of[2]

    def test_snapshot_written(self, legacy_db):
        """File-backed SQLite is copied before anything changes"""
        engine, path = legacy_db

        report = MultiTenantMigration(engine).run()

        backup = Path(report.backup_path)
        assert backup.exists()
        assert backup.name.startswith(f"{path.name}.backup.")
        backup_engine = create_engine(f"sqlite:///{backup}")
        try:
            assert not inspect(backup_engine).has_table("tenants")
        finally:
            backup_engine.dispose()

    def test_no_backup(self, legacy_db):
        """--no-backup skips the snapshot"""
        engine, _ = legacy_db

        report = MultiTenantMigration(engine, backup=False).run()

        assert report.backup_path is None

    def test_failure_restores_snapshot(self, legacy_db, monkeypatch):
        """A failing step leaves the database exactly as it was"""
        engine, _ = legacy_db

        def explode(conn, report):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(multi_tenant, "backfill_tenant_ids", explode)

        with pytest.raises(MigrationError):
            MultiTenantMigration(engine).run()

        inspector = inspect(engine)
        assert not inspector.has_table("tenants")
        assert "tenant_id" not in {col["name"] for col in inspector.get_columns("vouchers")}
        with engine.connect() as conn:
            assert conn.execute(text("SELECT COUNT(*) FROM vouchers")).scalar() == 6


class TestMigrateCommand:
    """python -m app.cli migrate"""

    def test_cli_migrate(self, legacy_db, capsys):
        """Exit code 0 and a summary line"""
        _, path = legacy_db

        exit_code = main(["migrate", "--database-url", f"sqlite:///{path}", "--no-backup"])

        assert exit_code == 0
        assert "users_migrated=3" in capsys.readouterr().out

    def test_cli_migrate_failure(self, legacy_db, monkeypatch):
        """Exit code 1 when the migration fails"""
        _, path = legacy_db

        def explode(conn, report):
            raise RuntimeError("boom")

        monkeypatch.setattr(multi_tenant, "backfill_tenant_ids", explode)

        assert main(["migrate", "--database-url", f"sqlite:///{path}"]) == 1


class TestAlembicRevisions:
    """alembic upgrade runs the same idempotent steps"""

    def test_upgrade_from_legacy_revision(self, tmp_path):
        """0001 creates the legacy schema; head migrates its data"""
        url = f"sqlite:///{tmp_path / 'alembic.db'}"
        config = Config()
        config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
        config.set_main_option("sqlalchemy.url", url)

        command.upgrade(config, "0001")
        engine = create_engine(url)
        try:
            with engine.begin() as conn:
                seed_legacy_data(conn)

            command.upgrade(config, "head")

            state = snapshot(engine)
            assert len(state["tenants"]) == 3
            assert all(tenant_id is not None for _, _, tenant_id in state["vouchers"])

            # Database is already migrated, so the CLI finds nothing to do
            report = MultiTenantMigration(engine, backup=False).run()
            assert not report.changed
        finally:
            engine.dispose()
