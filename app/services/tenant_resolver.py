from sqlalchemy.orm import Session

from app.core.exceptions import NoTenantAccessException
from app.models.role import TenantRole
from app.models.tenant_context import TenantContext
from app.models.user import User
from app.repositories.tenant_membership_repository import TenantMembershipRepository


class TenantResolver:
    """Resolve the single tenant context of an authenticated user"""

    def __init__(self, db: Session):
        self.membership_repo = TenantMembershipRepository(db)

    def resolve(self, user: User) -> TenantContext:
        """
        Build the TenantContext used to scope every tenant-bound request.

        Resolution:
        1. The user's membership joined with its tenant -> that tenant and role
        2. No membership but the user carries the super-admin marker ->
           sentinel context with tenant_id=None and role SUPER_ADMIN
        3. Neither -> NoTenantAccessException; there is no default tenant

        Reads only; never writes.

        Raises:
            NoTenantAccessException: If the user has no tenant and is not a super-admin
        """
        found = self.membership_repo.get_primary_membership(user.id)
        if found is not None:
            membership, tenant = found
            return TenantContext(
                user_id=user.id,
                email=user.email,
                tenant_id=tenant.id,
                tenant_name=tenant.name,
                role=membership.role,
                subscription_status=tenant.subscription_status,
            )

        if user.is_super_admin:
            return TenantContext(
                user_id=user.id,
                email=user.email,
                tenant_id=None,
                tenant_name=None,
                role=TenantRole.SUPER_ADMIN,
            )

        raise NoTenantAccessException("User does not belong to any tenant")

    def resolve_optional(self, user: User) -> TenantContext | None:
        """Like resolve(), but returns None instead of raising."""
        try:
            return self.resolve(user)
        except NoTenantAccessException:
            return None
