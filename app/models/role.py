"""Tenant role enum for role-based access control."""

from enum import Enum as PyEnum


class TenantRole(str, PyEnum):
    """
    Tenant membership roles.

    - ADMIN - Manage tenant name, members and invite codes, plus all data
    - MEMBER - Create/list/delete vouchers and readings, export tenant data
    - SUPER_ADMIN - Operator role; may hold no tenant at all, in which case
      only cross-tenant read-only views are available

    The first member of an auto-created tenant is always ADMIN.
    """

    ADMIN = "admin"
    MEMBER = "member"
    SUPER_ADMIN = "super_admin"
