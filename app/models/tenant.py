"""Tenant model for multi-tenant isolation."""

from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.tenant_membership import TenantMembership
    from app.models.invite_code import InviteCode


class Tenant(Base, TimestampMixin):
    """
    Multi-tenant isolation boundary.

    A tenant is a household ("family account") whose members share
    electricity vouchers and meter readings. Every voucher and reading
    belongs to exactly one tenant, and every query is filtered by it.

    Tenants are created either automatically at registration (one per
    user that registers without a usable invite code) or by the
    multi-tenant migration for pre-existing users.

    max_users is a soft cap recorded for billing; it is not enforced.
    """

    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subscription_status: Mapped[str] = mapped_column(
        String(50), nullable=False, default="active"
    )
    max_users: Mapped[int] = mapped_column(Integer, nullable=False, default=5)

    # Relationships
    memberships: Mapped[list["TenantMembership"]] = relationship(
        "TenantMembership",
        back_populates="tenant",
        cascade="all, delete-orphan",
    )
    invite_codes: Mapped[list["InviteCode"]] = relationship(
        "InviteCode",
        back_populates="tenant",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name='{self.name}')>"
