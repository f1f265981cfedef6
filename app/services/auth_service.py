import hmac
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import (
    DuplicateEmailException,
    InvalidCredentialsException,
    InvalidInviteCodeException,
    InviteExhaustedException,
    MissingCredentialOrInviteException,
    WeakPasswordException,
)
from app.core.security import create_access_token, hash_password, verify_password
from app.models.role import TenantRole
from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.schemas.auth_schemas import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    RegistrationOutcome,
    TenantSummary,
)
from app.services.invite_service import InviteService
from app.services.tenant_resolver import TenantResolver
from app.services.tenant_service import TenantService, default_tenant_name

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72


def check_password_strength(password: str) -> None:
    """
    Raises:
        WeakPasswordException: Too short, or longer than bcrypt can hash
    """
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        raise WeakPasswordException(
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
        )
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise WeakPasswordException(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")


def registration_key_matches(key: str | None) -> bool:
    if not key:
        return False
    return hmac.compare_digest(key.encode("utf-8"), settings.REGISTRATION_SECRET.encode("utf-8"))


class AuthService:
    """Service layer for registration, login and password changes"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.tenant_service = TenantService(db)
        self.invite_service = InviteService(db)

    def register(self, data: RegisterRequest) -> RegisterResponse:
        """
        Create a user and place them in a tenant.

        The registrant needs the registration key or an invite code. With
        a usable invite code they join that tenant as MEMBER. With no code,
        or a code that turns out invalid, expired or exhausted, a new
        tenant is created with the registrant as ADMIN. The user row,
        tenant/membership rows and invite consumption commit together.

        Any non-empty invite code is enough to register: an unusable one
        still falls back to a new tenant, so it stands in for the
        registration key. That case is logged at WARNING.

        Raises:
            WeakPasswordException: Password fails the strength rules
            MissingCredentialOrInviteException: Neither a valid key nor a code
            DuplicateEmailException: Email already registered
        """
        check_password_strength(data.password)

        invite_code = (data.invite_code or "").strip()
        if not invite_code and not registration_key_matches(data.registration_key):
            raise MissingCredentialOrInviteException(
                "A valid registration key or an invite code is required"
            )

        if self.user_repo.get_by_email(data.email):
            raise DuplicateEmailException("Email is already registered")

        try:
            user = self.user_repo.create_no_commit(
                User(email=data.email, password_hash=hash_password(data.password))
            )

            if invite_code:
                try:
                    invite = self.invite_service.get_redeemable(invite_code)
                    membership = self.invite_service.consume_no_commit(invite, user.id)
                    tenant_id, role = membership.tenant_id, membership.role
                    outcome = RegistrationOutcome.JOINED_VIA_INVITE
                except (InvalidInviteCodeException, InviteExhaustedException) as e:
                    logger.warning(
                        "InviteFallbackToNewTenant: registration for %s with unusable invite code (%s)",
                        data.email, e.error_code,
                    )
                    if not registration_key_matches(data.registration_key):
                        logger.warning(
                            "Registration for %s admitted without a registration key "
                            "on the strength of an unusable invite code",
                            data.email,
                        )
                    tenant_id, role = self._create_own_tenant(user)
                    outcome = RegistrationOutcome.INVITE_FALLBACK_TO_NEW_TENANT
            else:
                tenant_id, role = self._create_own_tenant(user)
                outcome = RegistrationOutcome.NEW_TENANT

            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateEmailException("Email is already registered")
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "User %s registered (tenant=%s, role=%s, outcome=%s)",
            user.id, tenant_id, role.value, outcome.value,
        )
        return RegisterResponse(
            user_id=user.id,
            token=create_access_token(user.id, user.email),
            tenant_id=tenant_id,
            role=role,
            outcome=outcome,
        )

    def _create_own_tenant(self, user: User) -> tuple[int, TenantRole]:
        tenant, membership = self.tenant_service.create_tenant_with_admin_no_commit(
            user, default_tenant_name(user.email)
        )
        return tenant.id, membership.role

    def login(self, data: LoginRequest) -> dict:
        """
        Verify email and password and issue a token.

        Returns:
            dict with token, user and the resolved tenant (None if the user has none)

        Raises:
            InvalidCredentialsException: Unknown email or wrong password
        """
        user = self.user_repo.get_by_email(data.email)
        if user is None or not verify_password(data.password, user.password_hash):
            logger.info("Failed login attempt for %s", data.email.strip().lower())
            raise InvalidCredentialsException("Invalid email or password")

        logger.info("User %s logged in", user.id)
        return {
            "token": create_access_token(user.id, user.email),
            "user": user,
            "tenant": self.tenant_summary(user),
        }

    def me(self, user: User) -> dict:
        return {"user": user, "tenant": self.tenant_summary(user)}

    def tenant_summary(self, user: User) -> TenantSummary | None:
        context = TenantResolver(self.db).resolve_optional(user)
        if context is None:
            return None
        return TenantSummary(
            id=context.tenant_id,
            name=context.tenant_name,
            role=context.role,
            subscription_status=context.subscription_status,
        )

    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """
        Replace the user's password after verifying the current one.

        Raises:
            InvalidCredentialsException: Current password is wrong
            WeakPasswordException: New password fails the strength rules
        """
        if not verify_password(current_password, user.password_hash):
            raise InvalidCredentialsException("Current password is incorrect")
        check_password_strength(new_password)

        user.password_hash = hash_password(new_password)
        self.user_repo.update(user)
        logger.info("User %s changed password", user.id)
