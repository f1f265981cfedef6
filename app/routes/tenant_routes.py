from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_tenant_context, get_current_user
from app.models.tenant_context import TenantContext
from app.models.user import User
from app.services.tenant_service import TenantService
from app.services.invite_service import InviteService
from app.schemas.tenant_schemas import (
    TenantResponse,
    TenantCreate,
    TenantUpdate,
    TenantMemberResponse,
    TenantRoleUpdate,
    TenantMemberRemoveResponse,
    TenantLeaveResponse,
)
from app.schemas.invite_schemas import InviteCreate, InviteResponse

router = APIRouter()


@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    data: TenantCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Create a tenant for a user who has none (for example after leaving one).

    The caller becomes its ADMIN. This endpoint does not require a tenant
    context.
    """
    service = TenantService(db)
    tenant = service.create_tenant(user, data.name)
    return {
        "id": tenant.id,
        "name": tenant.name,
        "subscription_status": tenant.subscription_status,
        "max_users": tenant.max_users,
        "member_count": 1,
        "created_at": tenant.created_at,
        "updated_at": tenant.updated_at,
    }


@router.get("/me", response_model=TenantResponse)
async def get_current_tenant(
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Get current tenant details.

    Returns tenant information for the authenticated user's current tenant.
    """
    service = TenantService(db)
    return service.get_current_tenant(context)


@router.patch("/me", response_model=TenantResponse)
async def update_tenant(
    tenant_update: TenantUpdate,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Update tenant name.

    - **Requires ADMIN permissions**
    - Only tenant name can be updated via this endpoint
    """
    service = TenantService(db)
    return service.update_tenant(tenant_update, context)


@router.get("/me/members", response_model=list[TenantMemberResponse])
async def list_members(
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    List all members of current tenant.

    Returns list of members with their roles and email, oldest first.
    Available to all members.
    """
    service = TenantService(db)
    return service.get_members(context)


@router.patch("/me/members/{user_id}/role", response_model=TenantMemberResponse)
async def update_member_role(
    user_id: int,
    role_update: TenantRoleUpdate,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Update member's role.

    - **Requires ADMIN permissions**
    - Role must be admin or member
    - Cannot change your own role
    """
    service = TenantService(db)
    return service.update_member_role(user_id, role_update, context)


@router.delete(
    "/me/members/{user_id}",
    response_model=TenantMemberRemoveResponse,
    status_code=status.HTTP_200_OK,
)
async def remove_member(
    user_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Remove member from tenant.

    - **Requires ADMIN permissions**
    - Cannot remove yourself (leave the tenant instead)
    """
    service = TenantService(db)
    service.remove_member(user_id, context)

    return {
        "message": "Member removed successfully",
        "removed_user_id": user_id,
    }


@router.post("/me/leave", response_model=TenantLeaveResponse)
async def leave_tenant(
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Leave the current tenant.

    If you are the last admin, the longest-standing remaining member
    becomes admin. The tenant's data stays with the tenant.
    """
    service = TenantService(db)
    tenant_id = service.leave_tenant(context)
    return {"message": "You have left the tenant", "tenant_id": tenant_id}


@router.post(
    "/me/invites",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invite(
    data: InviteCreate,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """
    Create an invite code for the current tenant.

    - **Requires ADMIN permissions**
    - Default: single use, expires after INVITE_TTL_DAYS
    """
    service = InviteService(db)
    return service.create_invite(data, context)


@router.get("/me/invites", response_model=list[InviteResponse])
async def list_invites(
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """List the tenant's invite codes, newest first (ADMIN only)"""
    service = InviteService(db)
    return service.list_invites(context)


@router.delete("/me/invites/{invite_id}", response_model=InviteResponse)
async def deactivate_invite(
    invite_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """Deactivate an invite code so it can no longer be redeemed (ADMIN only)"""
    service = InviteService(db)
    return service.deactivate_invite(invite_id, context)
