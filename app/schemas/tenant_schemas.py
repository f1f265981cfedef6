from pydantic import BaseModel, Field
from datetime import datetime
from app.models.role import TenantRole


class TenantResponse(BaseModel):
    """Tenant details response"""

    id: int
    name: str
    subscription_status: str
    max_users: int
    member_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TenantCreate(BaseModel):
    """Create a tenant for a user who has none"""

    name: str = Field(..., min_length=3, max_length=255)


class TenantUpdate(BaseModel):
    """Update tenant name (ADMIN only)"""

    name: str = Field(..., min_length=3, max_length=255)


class TenantMemberResponse(BaseModel):
    """Tenant member details with user info"""

    id: int
    user_id: int
    email: str
    role: TenantRole
    joined_at: datetime

    model_config = {"from_attributes": True}


class TenantRoleUpdate(BaseModel):
    """Update member's role (ADMIN only)"""

    role: TenantRole = Field(..., description="New role to assign (admin or member)")


class TenantMemberRemoveResponse(BaseModel):
    """Response after removing member"""

    message: str
    removed_user_id: int


class TenantLeaveResponse(BaseModel):
    message: str
    tenant_id: int
