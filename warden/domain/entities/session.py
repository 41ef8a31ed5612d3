from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String
from sqlmodel import Column, Field, SQLModel

from warden.utils.clock import utcnow


class Session(SQLModel, table=True):
    """A server-side authentication session.

    The cookie holds an opaque random token; only its SHA-256 digest is
    stored. A session authenticates its holder only while it is not revoked,
    not expired, and ``security_stamp`` still equals the owner's current stamp.

    Attributes:
        token_hash: Hex SHA-256 of the cookie token.
        user_id: Owner of the session.
        security_stamp: The owner's stamp at the moment the session was bound.
        is_persistent: Whether the cookie outlives the browser session.
        expires_at: Sliding expiry, pushed forward on use.
        revoked_at: Set on sign-out or rotation; a revoked session never comes back.
    """

    __tablename__ = "sessions"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    token_hash: str = Field(sa_column=Column(String(64), unique=True, index=True, nullable=False))
    user_id: int = Field(foreign_key="users.id", index=True)
    security_stamp: str = Field(max_length=64)
    is_persistent: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))
    last_activity_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))
    expires_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
    revoked_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))

    def is_active(self, now: datetime, current_stamp: str) -> bool:
        return self.revoked_at is None and self.expires_at > now and self.security_stamp == current_stamp
