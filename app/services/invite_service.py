import logging
import secrets
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import (
    AlreadyMemberException,
    InvalidInviteCodeException,
    InviteExhaustedException,
    NotFoundOrDeniedException,
)
from app.core.permissions import Permission
from app.models.base import utc_now
from app.models.invite_code import InviteCode
from app.models.role import TenantRole
from app.models.tenant import Tenant
from app.models.tenant_context import TenantContext
from app.models.tenant_membership import TenantMembership
from app.models.user import User
from app.repositories.invite_code_repository import InviteCodeRepository
from app.repositories.tenant_membership_repository import TenantMembershipRepository
from app.repositories.tenant_repository import TenantRepository
from app.schemas.invite_schemas import InviteCreate

logger = logging.getLogger(__name__)

CODE_GROUP_SIZE = 4
MAX_GENERATION_ATTEMPTS = 5


def generate_invite_code(num_bytes: int | None = None) -> str:
    """
    Random invite code from the OS CSPRNG, e.g. '9F3A-0C1B-77E2-D4A0'.

    8 bytes (64 bits) by default, rendered as grouped uppercase hex.
    """
    raw = secrets.token_hex(num_bytes or settings.INVITE_CODE_BYTES).upper()
    return "-".join(raw[i : i + CODE_GROUP_SIZE] for i in range(0, len(raw), CODE_GROUP_SIZE))


def normalize_invite_code(code: str) -> str:
    return code.strip().upper()


class InviteService:
    """Service layer for invite code creation and redemption"""

    def __init__(self, db: Session):
        self.db = db
        self.invite_repo = InviteCodeRepository(db)
        self.membership_repo = TenantMembershipRepository(db)
        self.tenant_repo = TenantRepository(db)

    def create_invite(self, data: InviteCreate, context: TenantContext) -> InviteCode:
        """
        Create an invite code for the caller's tenant (ADMIN only).

        Args:
            data: max_uses and optional TTL in days
            context: Tenant context

        Returns:
            Created InviteCode

        Raises:
            NotAdminException: If the caller is not an admin of the tenant
            NoTenantAccessException: If the caller has no tenant
        """
        context.require(Permission.MANAGE_INVITES)
        tenant_id = context.require_tenant()

        code = generate_invite_code()
        attempts = 1
        while self.invite_repo.code_exists(code):
            if attempts >= MAX_GENERATION_ATTEMPTS:
                raise RuntimeError("Could not generate a unique invite code")
            code = generate_invite_code()
            attempts += 1

        now = utc_now()
        ttl_days = data.ttl_days or settings.INVITE_TTL_DAYS
        invite = InviteCode(
            tenant_id=tenant_id,
            code=code,
            created_by=context.user_id,
            created_at=now,
            expires_at=now + timedelta(days=ttl_days),
            max_uses=data.max_uses,
            current_uses=0,
            is_active=True,
        )
        invite = self.invite_repo.create(invite)
        logger.info(
            "Invite %s created for tenant %s by user %s (max_uses=%s, expires_at=%s)",
            invite.id, tenant_id, context.user_id, invite.max_uses, invite.expires_at,
        )
        return invite

    def list_invites(self, context: TenantContext) -> list[InviteCode]:
        """List the tenant's invite codes, newest first (ADMIN only)."""
        context.require(Permission.MANAGE_INVITES)
        return self.invite_repo.list_for_tenant(context.require_tenant())

    def deactivate_invite(self, invite_id: int, context: TenantContext) -> InviteCode:
        """
        Deactivate an invite so it can no longer be redeemed (ADMIN only).

        Raises:
            NotFoundOrDeniedException: If the invite is missing or belongs to another tenant
        """
        context.require(Permission.MANAGE_INVITES)
        invite = self.invite_repo.get_by_id_and_tenant(invite_id, context.require_tenant())
        if not invite:
            raise NotFoundOrDeniedException(f"Invite {invite_id} not found or access denied")

        invite.is_active = False
        invite = self.invite_repo.update(invite)
        logger.info("Invite %s deactivated by user %s", invite.id, context.user_id)
        return invite

    def get_redeemable(self, code: str) -> InviteCode:
        """
        Look up an invite code and check it can still be used.

        Validation order: exists and active -> not expired -> uses remaining.

        Raises:
            InvalidInviteCodeException: Unknown, inactive or expired code
            InviteExhaustedException: All uses consumed
        """
        invite = self.invite_repo.get_by_code(normalize_invite_code(code))
        if invite is None:
            raise InvalidInviteCodeException("Invite code is invalid or expired")
        self._check_usable(invite)
        return invite

    def _check_usable(self, invite: InviteCode) -> None:
        if invite.is_usable():
            return
        if not invite.is_active or invite.is_expired():
            raise InvalidInviteCodeException("Invite code is invalid or expired")
        raise InviteExhaustedException("Invite code has no uses remaining")

    def consume_no_commit(self, invite: InviteCode, user_id: int) -> TenantMembership:
        """
        Consume one use of the invite and add the user as a MEMBER.

        Both writes are flushed but not committed; the caller commits or
        rolls back the pair as one unit. If the conditional increment
        touches no row, another redeemer took the last use (or the code
        expired or was deactivated) since it was validated.

        Raises:
            InvalidInviteCodeException / InviteExhaustedException: Lost the race
            IntegrityError: Membership already exists
        """
        if not self.invite_repo.increment_uses_no_commit(invite.id, utc_now()):
            self.db.refresh(invite)
            self._check_usable(invite)
            raise InviteExhaustedException("Invite code has no uses remaining")

        membership = TenantMembership(
            tenant_id=invite.tenant_id,
            user_id=user_id,
            role=TenantRole.MEMBER,
        )
        membership = self.membership_repo.create_no_commit(membership)
        self.db.expire(invite)
        return membership

    def redeem_invite(self, code: str, user: User) -> tuple[TenantMembership, Tenant]:
        """
        Join the invite's tenant as a MEMBER.

        Validation order: code exists and active -> not expired -> uses
        remaining -> user not already a member. Membership insert and use
        counter increment commit together or not at all.

        Args:
            code: Invite code as typed by the user
            user: Authenticated user

        Returns:
            (membership, tenant) tuple

        Raises:
            InvalidInviteCodeException: Unknown, inactive or expired code
            InviteExhaustedException: No uses remaining
            AlreadyMemberException: User already belongs to this or another tenant
        """
        invite = self.get_redeemable(code)

        if self.membership_repo.get_membership(user.id, invite.tenant_id):
            raise AlreadyMemberException("You are already a member of this tenant")
        if self.membership_repo.has_any_membership(user.id):
            raise AlreadyMemberException(
                "You already belong to a tenant; leave it before joining another"
            )

        try:
            membership = self.consume_no_commit(invite, user.id)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise AlreadyMemberException("You are already a member of this tenant")
        except Exception:
            self.db.rollback()
            raise

        tenant = self.tenant_repo.get_by_id(membership.tenant_id)
        logger.info("User %s joined tenant %s via invite %s", user.id, tenant.id, invite.id)
        return membership, tenant
