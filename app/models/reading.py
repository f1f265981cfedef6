from datetime import date
from decimal import Decimal
from sqlalchemy import Integer, Numeric, ForeignKey, Date, Text, Index
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base, TimestampMixin


class Reading(Base, TimestampMixin):
    """Meter reading; same ownership and visibility rules as Voucher."""

    __tablename__ = "readings"

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
    reading_value: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    reading_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_readings_tenant_id", "tenant_id"),
        Index("uq_readings_tenant_date", "tenant_id", "reading_date", unique=True),
    )
