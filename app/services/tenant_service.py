import logging

from sqlalchemy.orm import Session
from app.config import settings
from app.models.tenant import Tenant
from app.models.tenant_membership import TenantMembership
from app.models.user import User
from app.models.tenant_context import TenantContext
from app.models.role import TenantRole
from app.core.permissions import Permission
from app.repositories.tenant_repository import TenantRepository
from app.repositories.tenant_membership_repository import TenantMembershipRepository
from app.repositories.user_repository import UserRepository
from app.schemas.tenant_schemas import TenantUpdate, TenantRoleUpdate
from app.core.exceptions import (
    AlreadyMemberException,
    ForbiddenException,
    NoTenantAccessException,
    NotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)


def default_tenant_name(email: str) -> str:
    """Name given to a tenant created automatically for a user."""
    return f"{email}'s Family"


class TenantService:
    """Service layer for tenant management business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.tenant_repo = TenantRepository(db)
        self.membership_repo = TenantMembershipRepository(db)
        self.user_repo = UserRepository(db)

    def create_tenant_with_admin_no_commit(self, user: User, name: str) -> tuple[Tenant, TenantMembership]:
        """
        Create a tenant and make the user its first member, as ADMIN.

        Flushes both rows without committing so the caller can commit
        them together with whatever else belongs to the same unit of work
        (for example the user row at registration).
        """
        tenant = Tenant(
            name=name,
            subscription_status=settings.DEFAULT_SUBSCRIPTION_STATUS,
            max_users=settings.DEFAULT_MAX_USERS,
        )
        tenant = self.tenant_repo.create_no_commit(tenant)
        membership = TenantMembership(tenant_id=tenant.id, user_id=user.id, role=TenantRole.ADMIN)
        membership = self.membership_repo.create_no_commit(membership)
        return tenant, membership

    def create_tenant(self, user: User, name: str) -> Tenant:
        """
        Create a new tenant for a user who currently has none.

        Args:
            user: Authenticated user
            name: Tenant name

        Returns:
            Created tenant

        Raises:
            AlreadyMemberException: If the user already belongs to a tenant
        """
        if self.membership_repo.has_any_membership(user.id):
            raise AlreadyMemberException("You already belong to a tenant")

        try:
            tenant, _ = self.create_tenant_with_admin_no_commit(user, name.strip())
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(tenant)
        logger.info("Tenant %s created by user %s", tenant.id, user.id)
        return tenant

    def get_current_tenant(self, context: TenantContext) -> dict:
        """
        Get current tenant details with member count.

        Args:
            context: Tenant context with authenticated user

        Returns:
            Tenant fields plus member_count
        """
        tenant = self._load_tenant(context)
        return self._tenant_dict(tenant)

    def update_tenant(self, tenant_update: TenantUpdate, context: TenantContext) -> dict:
        """
        Update tenant name (ADMIN only).

        Raises:
            NotAdminException: If user is not ADMIN
        """
        context.require(Permission.MANAGE_TENANT)
        tenant = self._load_tenant(context)

        tenant.name = tenant_update.name.strip()
        tenant = self.tenant_repo.update(tenant)
        logger.info("Tenant %s renamed by user %s", tenant.id, context.user_id)
        return self._tenant_dict(tenant)

    def get_members(self, context: TenantContext) -> list[dict]:
        """
        Get all members of current tenant with user details.

        Args:
            context: Tenant context

        Returns:
            List of members with user info
        """
        context.require(Permission.READ_DATA)
        memberships = self.membership_repo.get_tenant_members(context.require_tenant())

        result = []
        for membership in memberships:
            user = self.user_repo.get_by_id(membership.user_id)
            result.append(self._member_dict(membership, user))
        return result

    def update_member_role(
        self, user_id: int, role_update: TenantRoleUpdate, context: TenantContext
    ) -> dict:
        """
        Update member's role (ADMIN only).

        Args:
            user_id: User ID to update
            role_update: New role (admin or member)
            context: Tenant context

        Returns:
            Updated member

        Raises:
            NotAdminException: If caller is not ADMIN
            ForbiddenException: If trying to change own role
            NotFoundException: If membership not found
            ValidationException: If the requested role is super_admin
        """
        context.require(Permission.MANAGE_MEMBERS)

        if role_update.role == TenantRole.SUPER_ADMIN:
            raise ValidationException("super_admin cannot be assigned through tenant management")

        # Get membership
        membership = self.membership_repo.get_membership(user_id, context.require_tenant())
        if not membership:
            raise NotFoundException("Member not found in this tenant")

        # Cannot modify self (check first for better error message)
        if user_id == context.user_id:
            raise ForbiddenException("Cannot change your own role")

        membership = self.membership_repo.update_role(membership, role_update.role)
        logger.info(
            "User %s role in tenant %s set to %s by user %s",
            user_id, membership.tenant_id, membership.role.value, context.user_id,
        )
        return self._member_dict(membership, self.user_repo.get_by_id(user_id))

    def remove_member(self, user_id: int, context: TenantContext) -> None:
        """
        Remove member from tenant (ADMIN only).

        Args:
            user_id: User ID to remove
            context: Tenant context

        Raises:
            NotAdminException: If caller is not ADMIN
            ForbiddenException: If trying to remove yourself (use leave instead)
            NotFoundException: If membership not found
        """
        context.require(Permission.MANAGE_MEMBERS)

        # Get membership
        membership = self.membership_repo.get_membership(user_id, context.require_tenant())
        if not membership:
            raise NotFoundException("Member not found in this tenant")

        # Cannot remove self (check first for better error message)
        if user_id == context.user_id:
            raise ForbiddenException("Cannot remove yourself from tenant; leave it instead")

        self.membership_repo.delete(membership)
        logger.info(
            "User %s removed from tenant %s by user %s", user_id, membership.tenant_id, context.user_id
        )

    def leave_tenant(self, context: TenantContext) -> int:
        """
        Leave the current tenant.

        If the leaver is the last admin and other members remain, the
        longest-standing remaining member is promoted to ADMIN in the same
        transaction. When the last member leaves, the tenant and its data
        are kept.

        Returns:
            ID of the tenant that was left

        Raises:
            NoTenantAccessException: If the caller has no tenant
        """
        tenant_id = context.require_tenant()
        membership = self.membership_repo.get_membership(context.user_id, tenant_id)
        if not membership:
            raise NoTenantAccessException("You are not a member of this tenant")

        try:
            was_admin = membership.role == TenantRole.ADMIN
            self.membership_repo.delete_no_commit(membership)

            remaining = self.membership_repo.get_tenant_members(tenant_id)
            if was_admin and remaining and self.membership_repo.count_admins(tenant_id) == 0:
                successor = remaining[0]
                successor.role = TenantRole.ADMIN
                logger.info(
                    "User %s promoted to admin of tenant %s after last admin left",
                    successor.user_id, tenant_id,
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if not remaining:
            logger.info("Tenant %s has no members left; data retained", tenant_id)
        logger.info("User %s left tenant %s", context.user_id, tenant_id)
        return tenant_id

    def _load_tenant(self, context: TenantContext) -> Tenant:
        tenant = self.tenant_repo.get_by_id(context.require_tenant())
        if not tenant:
            raise NoTenantAccessException("Tenant no longer exists")
        return tenant

    def _tenant_dict(self, tenant: Tenant) -> dict:
        return {
            "id": tenant.id,
            "name": tenant.name,
            "subscription_status": tenant.subscription_status,
            "max_users": tenant.max_users,
            "member_count": self.membership_repo.count_members(tenant.id),
            "created_at": tenant.created_at,
            "updated_at": tenant.updated_at,
        }

    @staticmethod
    def _member_dict(membership: TenantMembership, user: User | None) -> dict:
        return {
            "id": membership.id,
            "user_id": membership.user_id,
            "email": user.email if user else "unknown",
            "role": membership.role,
            "joined_at": membership.joined_at,
        }
