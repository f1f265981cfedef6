from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from app.models.role import TenantRole


class RegistrationOutcome(str, PyEnum):
    """How a registrant ended up in their tenant"""

    NEW_TENANT = "new_tenant"
    JOINED_VIA_INVITE = "joined_via_invite"
    # An invite code was supplied but unusable; a fresh tenant was created
    INVITE_FALLBACK_TO_NEW_TENANT = "invite_fallback_to_new_tenant"


class RegisterRequest(BaseModel):
    """Register with either the registration key or an invite code"""

    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)
    registration_key: Optional[str] = None
    invite_code: Optional[str] = Field(None, max_length=64)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("Invalid email address")
        return value


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    id: int
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TenantSummary(BaseModel):
    """Tenant context as seen by the caller"""

    id: Optional[int]
    name: Optional[str]
    role: TenantRole
    subscription_status: Optional[str] = None


class RegisterResponse(BaseModel):
    user_id: int
    token: str
    tenant_id: int
    role: TenantRole
    outcome: RegistrationOutcome


class LoginResponse(BaseModel):
    token: str
    user: UserResponse
    tenant: Optional[TenantSummary] = None


class MeResponse(BaseModel):
    user: UserResponse
    tenant: Optional[TenantSummary] = None


class MessageResponse(BaseModel):
    message: str
