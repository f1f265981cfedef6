"""Invite code model: capability tokens for joining a tenant."""

from datetime import datetime
from sqlalchemy import String, Integer, Boolean, ForeignKey, DateTime, true
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from app.models.base import Base, utc_now

if TYPE_CHECKING:
    from app.models.tenant import Tenant


class InviteCode(Base):
    """
    Time- and count-limited invite code for a tenant.

    A code is usable iff is_active AND now < expires_at AND
    current_uses < max_uses. current_uses only ever increases, and only
    together with the membership insert it pays for.
    """

    __tablename__ = "invite_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    created_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    max_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    current_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    # Relationships
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="invite_codes")

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= self.expires_at

    def has_uses_remaining(self) -> bool:
        return self.current_uses < self.max_uses

    def is_usable(self, now: datetime | None = None) -> bool:
        return self.is_active and not self.is_expired(now) and self.has_uses_remaining()

    def __repr__(self) -> str:
        return (
            f"<InviteCode(id={self.id}, tenant_id={self.tenant_id}, "
            f"uses={self.current_uses}/{self.max_uses}, active={self.is_active})>"
        )
