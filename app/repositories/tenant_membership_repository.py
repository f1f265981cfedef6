"""Repository for TenantMembership model operations."""

from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.tenant import Tenant
from app.models.tenant_membership import TenantMembership
from app.models.role import TenantRole


class TenantMembershipRepository:
    """Repository for TenantMembership model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_membership(self, user_id: int, tenant_id: int) -> TenantMembership | None:
        """
        Get membership for a specific user in a specific tenant.

        Args:
            user_id: User ID
            tenant_id: Tenant ID

        Returns:
            TenantMembership object or None if not found
        """
        return (
            self.db.query(TenantMembership)
            .filter(
                TenantMembership.user_id == user_id,
                TenantMembership.tenant_id == tenant_id,
            )
            .first()
        )

    def get_primary_membership(
        self, user_id: int
    ) -> tuple[TenantMembership, Tenant] | None:
        """
        Get the user's membership joined with its tenant.

        A user normally has at most one membership; if legacy data left
        several, the earliest one wins so resolution stays deterministic.

        Args:
            user_id: User ID

        Returns:
            (membership, tenant) tuple or None if the user has no tenant
        """
        row = (
            self.db.query(TenantMembership, Tenant)
            .join(Tenant, Tenant.id == TenantMembership.tenant_id)
            .filter(TenantMembership.user_id == user_id)
            .order_by(TenantMembership.joined_at.asc(), TenantMembership.id.asc())
            .first()
        )
        return (row[0], row[1]) if row else None

    def get_tenant_members(self, tenant_id: int) -> list[TenantMembership]:
        """
        Get all memberships for a tenant, oldest first.

        Args:
            tenant_id: Tenant ID

        Returns:
            List of TenantMembership objects for the tenant
        """
        return (
            self.db.query(TenantMembership)
            .filter(TenantMembership.tenant_id == tenant_id)
            .order_by(TenantMembership.joined_at.asc(), TenantMembership.id.asc())
            .all()
        )

    def count_members(self, tenant_id: int) -> int:
        return (
            self.db.query(func.count(TenantMembership.id))
            .filter(TenantMembership.tenant_id == tenant_id)
            .scalar()
        )

    def count_admins(self, tenant_id: int) -> int:
        return (
            self.db.query(func.count(TenantMembership.id))
            .filter(
                TenantMembership.tenant_id == tenant_id,
                TenantMembership.role == TenantRole.ADMIN,
            )
            .scalar()
        )

    def has_any_membership(self, user_id: int) -> bool:
        return (
            self.db.query(TenantMembership.id)
            .filter(TenantMembership.user_id == user_id)
            .first()
            is not None
        )

    def create_no_commit(self, membership: TenantMembership) -> TenantMembership:
        """
        Add a tenant membership without committing.

        Args:
            membership: TenantMembership object to create

        Returns:
            TenantMembership object with ID populated

        Raises:
            IntegrityError: If (tenant_id, user_id) already exists
        """
        self.db.add(membership)
        self.db.flush()
        return membership

    def update_role(
        self, membership: TenantMembership, new_role: TenantRole
    ) -> TenantMembership:
        """
        Update a member's role.

        Args:
            membership: TenantMembership object to update
            new_role: New role to assign

        Returns:
            Updated TenantMembership object
        """
        membership.role = new_role
        self.db.commit()
        self.db.refresh(membership)
        return membership

    def delete_no_commit(self, membership: TenantMembership) -> None:
        """Remove a user from a tenant without committing"""
        self.db.delete(membership)
        self.db.flush()

    def delete(self, membership: TenantMembership) -> None:
        """
        Remove a user from a tenant.

        Args:
            membership: TenantMembership object to delete
        """
        self.db.delete(membership)
        self.db.commit()

    def count_all(self) -> int:
        """Count memberships across every tenant (super-admin views)"""
        return self.db.query(func.count(TenantMembership.id)).scalar()
