from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.services.invite_service import InviteService
from app.schemas.invite_schemas import InviteRedeemRequest, InviteRedeemResponse

router = APIRouter()


@router.post("/redeem", response_model=InviteRedeemResponse)
async def redeem_invite(
    data: InviteRedeemRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Join a tenant with an invite code.

    - Joins as MEMBER
    - Fails if the code is invalid, expired or used up
    - Fails if the user already belongs to a tenant
    """
    service = InviteService(db)
    membership, tenant = service.redeem_invite(data.code, user)
    return {
        "joined": True,
        "tenant_id": tenant.id,
        "tenant_name": tenant.name,
        "role": membership.role,
    }
