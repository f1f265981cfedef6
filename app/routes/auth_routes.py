from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.services.auth_service import AuthService
from app.schemas.auth_schemas import (
    RegisterRequest,
    RegisterResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    ChangePasswordRequest,
    MessageResponse,
)

router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """
    Register a new user.

    - Requires the registration key **or** an invite code
    - A usable invite code joins its tenant as MEMBER
    - Otherwise a new tenant is created with the user as ADMIN
    """
    service = AuthService(db)
    return service.register(data)


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token"""
    service = AuthService(db)
    return service.login(data)


@router.get("/me", response_model=MeResponse)
async def me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Current user and their tenant (null when they have none)"""
    service = AuthService(db)
    return service.me(user)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = AuthService(db)
    service.change_password(user, data.current_password, data.new_password)
    return {"message": "Password changed successfully"}
