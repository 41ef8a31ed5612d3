"""Centralized, structured exception hierarchy for Warden.

Each exception carries a machine-readable ``code`` for programmatic handling
and a human-readable ``message`` that is safe to show to the client. Messages
on security-sensitive paths are deliberately generic; the precise reason goes
to the audit log instead.

The hierarchy maps cleanly to HTTP status codes in ``warden.core.handlers``:

- ``ValidationError`` and its subclasses: 400
- ``AuthenticationError`` and its subclasses: 401
- ``PermissionError``: 403
- ``UserNotFoundError``: 404
- ``EmailServiceError``: 503
- ``DependencyError`` and everything else: 500
"""

from typing import Final, List, Optional

__all__: Final = [
    "WardenError",
    "ValidationError",
    "PasswordPolicyError",
    "DuplicateUserError",
    "EmailAlreadyVerifiedError",
    "TwoFactorEnforcedError",
    "TokenInvalidError",
    "CsrfError",
    "AuthenticationError",
    "InvalidCredentialsError",
    "AccountLockedError",
    "InvalidTwoFactorCodeError",
    "PermissionError",
    "UserNotFoundError",
    "DependencyError",
    "DatabaseError",
    "EmailServiceError",
    "TemplateNotFoundError",
    "EncryptionError",
    "DecryptionError",
]


class WardenError(Exception):
    """Base exception class for all custom errors in the Warden application.

    Attributes:
        message (str): A human-readable error message.
        code (str): A unique, machine-readable error code.
    """

    message: str
    code: str = "generic_error"

    def __init__(self, message: str, code: str = "generic_error"):
        self.message = message
        self.code = code
        Exception.__init__(self, self.message)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Validation errors (400 Bad Request)
# ---------------------------------------------------------------------------


class ValidationError(WardenError):
    """Raised for malformed or unacceptable input.

    ``field`` is set when the problem can be attributed to one request field;
    it is surfaced to the client as field-level detail.
    """

    def __init__(self, message: str, code: str = "validation_error", field: Optional[str] = None):
        super().__init__(message, code)
        self.field = field


class PasswordPolicyError(ValidationError):
    """Raised when a new password does not satisfy the password policy."""

    def __init__(self, violations: List[str], code: str = "password_policy_error"):
        super().__init__("Password does not meet requirements", code, field="password")
        self.violations = violations


class DuplicateUserError(ValidationError):
    def __init__(self, message: str = "Username already taken", code: str = "duplicate_user"):
        super().__init__(message, code, field="username")


class EmailAlreadyVerifiedError(ValidationError):
    def __init__(self, message: str = "Email already verified", code: str = "email_already_verified"):
        super().__init__(message, code)


class TwoFactorEnforcedError(ValidationError):
    """Raised when a user tries to switch off administratively enforced 2FA."""

    def __init__(
        self,
        message: str = "Two-factor authentication is enforced by administrator and cannot be disabled",
        code: str = "two_factor_enforced",
    ):
        super().__init__(message, code)


class TokenInvalidError(ValidationError):
    """Raised when a link token or one-time code does not verify.

    Expired, wrong, exhausted and replaced tokens all raise this with the
    same message, so clients cannot tell the cases apart.
    """

    def __init__(self, message: str = "Invalid or expired token", code: str = "token_invalid"):
        super().__init__(message, code)


class CsrfError(ValidationError):
    def __init__(self, message: str = "Invalid or missing CSRF token", code: str = "csrf_error"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Authentication errors (401 Unauthorized)
# ---------------------------------------------------------------------------


class AuthenticationError(WardenError):
    """Raised for general authentication failures.

    The message must stay generic so it never reveals whether an account
    exists or which check failed.
    """

    def __init__(self, message: str = "Unauthorized", code: str = "authentication_error"):
        super().__init__(message, code)


class InvalidCredentialsError(AuthenticationError):
    def __init__(self, message: str = "Invalid credentials", code: str = "invalid_credentials"):
        super().__init__(message, code)


class AccountLockedError(AuthenticationError):
    def __init__(
        self,
        message: str = "Account is locked. Check your email for details.",
        code: str = "account_locked",
    ):
        super().__init__(message, code)


class InvalidTwoFactorCodeError(AuthenticationError):
    def __init__(self, message: str = "Invalid 2FA code", code: str = "invalid_two_factor_code"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Authorization and lookup errors
# ---------------------------------------------------------------------------


class PermissionError(WardenError):
    """Raised when an authenticated user lacks the role for an action (403)."""

    def __init__(self, message: str = "Forbidden", code: str = "permission_denied"):
        super().__init__(message, code)


class UserNotFoundError(WardenError):
    """Raised only on paths where revealing absence is acceptable (404)."""

    def __init__(self, message: str = "User not found", code: str = "user_not_found"):
        super().__init__(message, code)


# ---------------------------------------------------------------------------
# Dependency failures (5xx)
# ---------------------------------------------------------------------------


class DependencyError(WardenError):
    """Base for failures of collaborators the core depends on."""

    def __init__(self, message: str, code: str = "dependency_error"):
        super().__init__(message, code)


class DatabaseError(DependencyError):
    def __init__(self, message: str, code: str = "database_error"):
        super().__init__(message, code)


class EmailServiceError(DependencyError):
    """Raised when a message cannot be rendered or handed to the transport."""

    def __init__(self, message: str, code: str = "email_service_error"):
        super().__init__(message, code)


class TemplateNotFoundError(EmailServiceError):
    """Raised for an unknown email template. Never retried."""

    def __init__(self, message: str, code: str = "template_not_found"):
        super().__init__(message, code)


class EncryptionError(WardenError):
    def __init__(self, message: str = "Failed to encrypt user information", code: str = "encryption_error"):
        super().__init__(message, code)


class DecryptionError(WardenError):
    def __init__(self, message: str = "Failed to decrypt user information", code: str = "decryption_error"):
        super().__init__(message, code)
