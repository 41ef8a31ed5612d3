from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, String
from sqlmodel import Column, Field, SQLModel

from warden.utils.clock import utcnow


class Role(str, Enum):
    """Roles a user can hold (RBAC).

    Attributes:
        ADMIN: Full administrative access, including the forced 2FA reset.
        USER: Standard account. Granted to every registered user.
        AUDIT_INVESTIGATOR: May read and, with justification, decrypt audit logs.
    """

    ADMIN = "Admin"
    USER = "User"
    AUDIT_INVESTIGATOR = "AuditInvestigator"


class TwoFactorMethod(str, Enum):
    """The second factor a user has enrolled."""

    NONE = "None"
    AUTHENTICATOR = "Authenticator"
    EMAIL = "Email"


class User(SQLModel, table=True):
    """Represents a User entity and acts as an Aggregate Root.

    The record carries everything the authentication core needs: the
    password hash, the lockout counters, the rotating security stamp and the
    two-factor configuration. Per-purpose auxiliary tokens live in
    ``UserToken`` rows keyed by this user's id.

    Attributes:
        id: The unique identifier for the user (primary key).
        username: Login name, unique case-insensitively via ``normalized_username``.
        email: Contact address, unique case-insensitively via ``normalized_email``.
        hashed_password: The bcrypt hash of the password.
        email_confirmed: Unconfirmed accounts may not sign in.
        security_stamp: Rotating value bound into every session; rotation
            invalidates all sessions issued before it.
        two_factor_enabled: Whether a second factor is required at sign-in.
        two_factor_method: Which second factor is enrolled.
        two_factor_enforced: Set by an administrator; the user cannot disable 2FA.
        authenticator_key: Base32 TOTP shared secret, if one has been generated.
        lockout_end: Sign-in is refused until this instant.
        access_failed_count: Consecutive failed password checks.
    """

    __tablename__ = "users"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(sa_column=Column(String(50), nullable=False))
    normalized_username: str = Field(sa_column=Column(String(50), unique=True, index=True, nullable=False))
    email: str = Field(sa_column=Column(String(320), nullable=False))
    normalized_email: str = Field(sa_column=Column(String(320), unique=True, index=True, nullable=False))
    hashed_password: str = Field(max_length=255)
    email_confirmed: bool = Field(default=False)
    security_stamp: str = Field(max_length=64)

    two_factor_enabled: bool = Field(default=False)
    two_factor_method: str = Field(
        default=TwoFactorMethod.NONE.value,
        sa_column=Column(String(20), nullable=False, default=TwoFactorMethod.NONE.value),
    )
    two_factor_enforced: bool = Field(default=False)
    authenticator_key: Optional[str] = Field(default=None, max_length=64)

    lockout_end: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    access_failed_count: int = Field(default=0)

    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))
    updated_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))

    def is_locked_out(self, now: datetime) -> bool:
        return self.lockout_end is not None and self.lockout_end > now

    @property
    def method(self) -> TwoFactorMethod:
        return TwoFactorMethod(self.two_factor_method or TwoFactorMethod.NONE.value)


class UserRole(SQLModel, table=True):
    """Association between a user and one of the fixed roles."""

    __tablename__ = "user_roles"
    __table_args__ = {"extend_existing": True}

    user_id: int = Field(foreign_key="users.id", primary_key=True)
    role: str = Field(sa_column=Column(String(32), primary_key=True))
