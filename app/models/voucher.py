from datetime import date
from decimal import Decimal
from sqlalchemy import String, Integer, Numeric, ForeignKey, Date, Text, Index
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base, TimestampMixin


class Voucher(Base, TimestampMixin):
    """
    Prepaid electricity purchase.

    user_id records who entered it; tenant_id decides who may see it.
    tenant_id is nullable only so legacy single-user rows can exist until
    the multi-tenant migration backfills them.
    """

    __tablename__ = "vouchers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=True,
    )
    token_number: Mapped[str] = mapped_column(String(64), nullable=False)
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    kwh_amount: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    vat_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False, default=0
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Tenant indexes (created by the multi-tenant migration on legacy databases)
    __table_args__ = (
        Index("ix_vouchers_tenant_id", "tenant_id"),
        Index("ix_vouchers_tenant_date", "tenant_id", "purchase_date"),
        Index("uq_vouchers_tenant_token", "tenant_id", "token_number", unique=True),
    )
