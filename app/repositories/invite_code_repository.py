"""Repository for InviteCode model operations."""

from datetime import datetime
from sqlalchemy import update
from sqlalchemy.orm import Session
from app.models.invite_code import InviteCode


class InviteCodeRepository:
    """Repository for InviteCode model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_code(self, code: str) -> InviteCode | None:
        return self.db.query(InviteCode).filter(InviteCode.code == code).first()

    def get_by_id_and_tenant(self, invite_id: int, tenant_id: int) -> InviteCode | None:
        """Get invite ensuring it belongs to the tenant."""
        return (
            self.db.query(InviteCode)
            .filter(InviteCode.id == invite_id, InviteCode.tenant_id == tenant_id)
            .first()
        )

    def code_exists(self, code: str) -> bool:
        return self.db.query(InviteCode.id).filter(InviteCode.code == code).first() is not None

    def list_for_tenant(self, tenant_id: int) -> list[InviteCode]:
        return (
            self.db.query(InviteCode)
            .filter(InviteCode.tenant_id == tenant_id)
            .order_by(InviteCode.created_at.desc(), InviteCode.id.desc())
            .all()
        )

    def create(self, invite: InviteCode) -> InviteCode:
        self.db.add(invite)
        self.db.commit()
        self.db.refresh(invite)
        return invite

    def update(self, invite: InviteCode) -> InviteCode:
        self.db.commit()
        self.db.refresh(invite)
        return invite

    def increment_uses_no_commit(self, invite_id: int, now: datetime) -> bool:
        """
        Consume one use of an invite if, and only if, it is still usable.

        The usability check and the increment are a single conditional
        UPDATE, so two concurrent redeemers of the last use cannot both
        succeed. Nothing is committed; the caller commits together with
        the membership insert.

        Args:
            invite_id: InviteCode ID
            now: Current UTC time used for the expiry check

        Returns:
            True if a use was consumed, False if the invite was no longer usable
        """
        result = self.db.execute(
            update(InviteCode)
            .where(
                InviteCode.id == invite_id,
                InviteCode.is_active.is_(True),
                InviteCode.current_uses < InviteCode.max_uses,
                InviteCode.expires_at > now,
            )
            .values(current_uses=InviteCode.current_uses + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
