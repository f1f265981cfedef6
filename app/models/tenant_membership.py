"""Tenant membership model linking users to tenants with roles."""

from datetime import datetime
from sqlalchemy import Integer, ForeignKey, Enum, UniqueConstraint, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from app.models.base import Base, utc_now
from app.models.role import TenantRole

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.tenant import Tenant


class TenantMembership(Base):
    """
    Join table (tenant_users) linking users to tenants with roles.

    Under the primary model a user belongs to at most one tenant;
    super-admins may belong to none.

    Constraints:
    - Unique(tenant_id, user_id) - a user cannot join the same tenant twice
    - The first member of an auto-created tenant is ADMIN
    """

    __tablename__ = "tenant_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[TenantRole] = mapped_column(
        Enum(TenantRole, native_enum=False, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=TenantRole.MEMBER,
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)

    # Relationships
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="memberships")
    user: Mapped["User"] = relationship("User", back_populates="memberships")

    # Constraints
    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", name="uq_tenant_user"),
    )

    def __repr__(self) -> str:
        return f"<TenantMembership(tenant_id={self.tenant_id}, user_id={self.user_id}, role={self.role.value})>"
