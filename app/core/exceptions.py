class ElectricityTrackerException(Exception):
    """Base exception for electricity tracker"""

    error_code = "ERROR"


class UnauthorizedException(ElectricityTrackerException):
    """Raised when JWT validation or credential checks fail"""

    error_code = "UNAUTHORIZED"


class InvalidCredentialsException(UnauthorizedException):
    """Raised when email/password do not match a user"""

    error_code = "INVALID_CREDENTIALS"


class ForbiddenException(ElectricityTrackerException):
    """Raised when an identified caller is not permitted"""

    error_code = "FORBIDDEN"


class NoTenantAccessException(ForbiddenException):
    """Raised when the caller resolves to no tenant context"""

    error_code = "NO_TENANT_ACCESS"


class NotAdminException(ForbiddenException):
    """Raised when an admin-only operation is attempted by a non-admin"""

    error_code = "NOT_ADMIN"


class NotFoundException(ElectricityTrackerException):
    """Raised when resource not found"""

    error_code = "NOT_FOUND"


class NotFoundOrDeniedException(NotFoundException):
    """Raised when a row is missing or belongs to another tenant"""

    error_code = "NOT_FOUND_OR_DENIED"


class ValidationException(ElectricityTrackerException):
    """Raised for business logic validation errors"""

    error_code = "VALIDATION_ERROR"


class WeakPasswordException(ValidationException):
    error_code = "WEAK_PASSWORD"


class MissingCredentialOrInviteException(ValidationException):
    error_code = "MISSING_CREDENTIAL_OR_INVITE"


class InvalidInviteCodeException(ValidationException):
    """Raised for unknown, deactivated or expired invite codes"""

    error_code = "INVALID_OR_EXPIRED_CODE"


class ConflictException(ElectricityTrackerException):
    """Raised when a write conflicts with existing state"""

    error_code = "CONFLICT"


class DuplicateEmailException(ConflictException):
    error_code = "DUPLICATE_EMAIL"


class AlreadyMemberException(ConflictException):
    error_code = "ALREADY_MEMBER"


class InviteExhaustedException(ConflictException):
    """Raised when an invite code has no uses remaining"""

    error_code = "EXHAUSTED_USES"


class DuplicateRecordException(ConflictException):
    error_code = "DUPLICATE_RECORD"


class MigrationError(ElectricityTrackerException):
    """Raised after a failed migration has been rolled back"""

    error_code = "MIGRATION_FAILED"
