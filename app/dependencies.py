from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.core.security import extract_user_id
from app.core.exceptions import UnauthorizedException
from app.database import get_db
from app.repositories.user_repository import UserRepository
from app.models.user import User
from app.models.tenant_context import TenantContext
from app.services.tenant_resolver import TenantResolver

# Missing credentials are reported by get_current_user, not by HTTPBearer
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    FastAPI dependency to validate JWT and load the user.

    Flow:
    1. Extract token from Authorization: Bearer <token>
    2. Validate JWT using SECRET_KEY
    3. Extract user id from 'sub' claim
    4. Load the User record; a token for a deleted user is rejected
    5. Return User object for use in endpoints

    Raises:
        UnauthorizedException: If the header is missing, the token is invalid
            or expired, or the user no longer exists (401 via app/main.py)
    """
    if credentials is None:
        raise UnauthorizedException("Not authenticated")

    user_id = extract_user_id(credentials.credentials)

    user = UserRepository(db).get_by_id(user_id)
    if user is None:
        raise UnauthorizedException("User no longer exists")

    return user


async def get_tenant_context(
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> TenantContext:
    """
    FastAPI dependency resolving the caller's tenant context.

    Raises:
        NoTenantAccessException: If the user has no tenant and is not a super-admin
    """
    return TenantResolver(db).resolve(user)
