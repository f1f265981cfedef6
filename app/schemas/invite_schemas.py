from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.config import settings
from app.models.role import TenantRole


class InviteCreate(BaseModel):
    """Create an invite code for the current tenant (ADMIN only)"""

    max_uses: int = Field(default=1, ge=1, le=settings.INVITE_MAX_USES_LIMIT)
    ttl_days: Optional[int] = Field(
        default=None, ge=1, le=90, description="Days until expiry (default from settings)"
    )


class InviteResponse(BaseModel):
    id: int
    code: str
    expires_at: datetime
    max_uses: int
    current_uses: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class InviteRedeemRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)


class InviteRedeemResponse(BaseModel):
    joined: bool
    tenant_id: int
    tenant_name: str
    role: TenantRole
