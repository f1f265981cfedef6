"""Role to permission mapping and the single authorization check."""

from enum import Enum as PyEnum
from typing import TYPE_CHECKING

from app.core.exceptions import NoTenantAccessException, NotAdminException
from app.models.role import TenantRole

if TYPE_CHECKING:
    from app.models.tenant_context import TenantContext


class Permission(str, PyEnum):
    READ_DATA = "read_data"
    WRITE_DATA = "write_data"
    EXPORT_DATA = "export_data"
    MANAGE_INVITES = "manage_invites"
    MANAGE_MEMBERS = "manage_members"
    MANAGE_TENANT = "manage_tenant"
    READ_ALL_TENANTS = "read_all_tenants"


MEMBER_PERMISSIONS = frozenset(
    {Permission.READ_DATA, Permission.WRITE_DATA, Permission.EXPORT_DATA}
)

ADMIN_PERMISSIONS = MEMBER_PERMISSIONS | {
    Permission.MANAGE_INVITES,
    Permission.MANAGE_MEMBERS,
    Permission.MANAGE_TENANT,
}

# Must cover every TenantRole
ROLE_PERMISSIONS: dict[TenantRole, frozenset[Permission]] = {
    TenantRole.ADMIN: ADMIN_PERMISSIONS,
    TenantRole.MEMBER: MEMBER_PERMISSIONS,
    TenantRole.SUPER_ADMIN: ADMIN_PERMISSIONS | {Permission.READ_ALL_TENANTS},
}

# Permissions whose absence is reported as "not admin" rather than "no access"
ADMIN_ONLY = frozenset(
    {Permission.MANAGE_INVITES, Permission.MANAGE_MEMBERS, Permission.MANAGE_TENANT}
)

# Permissions usable without a concrete tenant (super-admin aggregate views)
TENANTLESS = frozenset({Permission.READ_DATA, Permission.READ_ALL_TENANTS})


def permissions_for(role: TenantRole) -> frozenset[Permission]:
    """Return the permission set of a role; raises KeyError for unmapped roles."""
    return ROLE_PERMISSIONS[role]


def authorize(context: "TenantContext", permission: Permission) -> None:
    """
    Single authorization boundary for tenant-scoped operations.

    Args:
        context: Resolved tenant context of the caller
        permission: Permission required by the operation

    Raises:
        NotAdminException: If an admin-only permission is missing
        NoTenantAccessException: If the permission is missing, or the
            operation needs a tenant and the context has none
    """
    if permission not in permissions_for(context.role):
        if permission in ADMIN_ONLY:
            raise NotAdminException("Only tenant admins can perform this action")
        raise NoTenantAccessException("You do not have access to this tenant's data")

    if context.tenant_id is None and permission not in TENANTLESS:
        raise NoTenantAccessException("This action requires a tenant membership")


def read_scope(context: "TenantContext") -> tuple[int | None, bool]:
    """
    Authorize a read and return the (tenant_id, all_tenants) filter for it.

    A tenant-less super-admin reads across every tenant; everyone else
    reads their own tenant only.
    """
    authorize(context, Permission.READ_DATA)
    if context.is_cross_tenant():
        authorize(context, Permission.READ_ALL_TENANTS)
        return None, True
    return context.require_tenant(), False
