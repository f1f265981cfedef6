"""add_multi_tenant_support

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-05 18:40:09.774120

"""
from typing import Sequence, Union

from alembic import op

from app.migrations.multi_tenant import apply_multi_tenant_schema


# revision identifiers, used by Alembic.
revision: str = '0002'
down_revision: Union[str, Sequence[str], None] = '0001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Upgrade schema to multi-tenant architecture.

    Creates (only where missing):
    - tenants, tenant_users and invite_codes tables
    - users.is_super_admin, vouchers.tenant_id, readings.tenant_id columns
    - tenant indexes on vouchers and readings

    Data Migration:
    - Creates one "<email>'s Family" tenant per user without a membership
    - Adds that user as ADMIN
    - Backfills tenant_id on the user's vouchers and readings

    Same steps as `python -m app.cli migrate`, so databases already
    migrated by the CLI upgrade as a no-op.
    """
    apply_multi_tenant_schema(op.get_bind(), operations=op)


def downgrade() -> None:
    """
    Rollback multi-tenant architecture changes.

    WARNING: This will delete all tenant, membership and invite data.
    Vouchers and readings revert to being owned by individual users.
    """
    op.drop_index('uq_readings_tenant_date', table_name='readings')
    op.drop_index('ix_readings_tenant_id', table_name='readings')
    op.drop_index('uq_vouchers_tenant_token', table_name='vouchers')
    op.drop_index('ix_vouchers_tenant_date', table_name='vouchers')
    op.drop_index('ix_vouchers_tenant_id', table_name='vouchers')

    with op.batch_alter_table('readings', schema=None) as batch_op:
        batch_op.drop_column('tenant_id')
    with op.batch_alter_table('vouchers', schema=None) as batch_op:
        batch_op.drop_column('tenant_id')
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.drop_column('is_super_admin')

    op.drop_table('invite_codes')
    op.drop_table('tenant_users')
    op.drop_table('tenants')
