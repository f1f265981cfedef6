"""Tenant context for request authorization."""

from dataclasses import dataclass
from app.core.permissions import Permission, authorize
from app.core.exceptions import NoTenantAccessException
from app.models.role import TenantRole


@dataclass(frozen=True)
class TenantContext:
    """
    Immutable tenant context resolved for one request.

    Built by TenantResolver from the authenticated user and their
    membership, then passed explicitly to every tenant-scoped service
    call. tenant_id is None only for a super-admin with no membership.

    Attributes:
        user_id: The authenticated user's ID
        email: The authenticated user's email
        tenant_id: The tenant all reads/writes are filtered by
        tenant_name: Display name of the tenant
        role: The user's role within this tenant
        subscription_status: The tenant's subscription status
    """

    user_id: int
    email: str
    tenant_id: int | None
    tenant_name: str | None
    role: TenantRole
    subscription_status: str | None = None

    def require(self, permission: Permission) -> None:
        """Raise unless the caller may perform an operation needing permission."""
        authorize(self, permission)

    def require_tenant(self) -> int:
        """Return the tenant id or raise if the context has none."""
        if self.tenant_id is None:
            raise NoTenantAccessException("This action requires a tenant membership")
        return self.tenant_id

    def is_cross_tenant(self) -> bool:
        """True for the tenant-less super-admin sentinel context."""
        return self.tenant_id is None and self.role == TenantRole.SUPER_ADMIN

    def __repr__(self) -> str:
        return f"<TenantContext(user_id={self.user_id}, tenant_id={self.tenant_id}, role={self.role.value})>"
