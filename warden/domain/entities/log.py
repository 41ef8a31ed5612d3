from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Integer, String, Text
from sqlmodel import Column, Field, SQLModel

from warden.utils.clock import utcnow


class LogCategory(str, Enum):
    ERROR = "ERROR"
    AUDIT = "AUDIT"
    REQUEST = "REQUEST"
    MAIL = "MAIL"
    SYSTEM = "SYSTEM"


# SQLite only auto-increments INTEGER primary keys.
_LOG_ID_TYPE = BigInteger().with_variant(Integer(), "sqlite")


class Log(SQLModel, table=True):
    """An append-only audit trail entry.

    ``message`` never contains personal data. ``user`` is the pseudonym of
    the acting identity, or one of the literals ``anonymous`` / ``system``.
    ``encrypted_user_info`` holds the reversibly encrypted identity and is
    only present for AUDIT and ERROR entries about a real identity.
    """

    __tablename__ = "logs"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, sa_column=Column(_LOG_ID_TYPE, primary_key=True, autoincrement=True))
    category: str = Field(sa_column=Column(String(16), index=True, nullable=False))
    action: str = Field(sa_column=Column(String(256), nullable=False))
    context: str = Field(sa_column=Column(String(512), nullable=False))
    message: str = Field(sa_column=Column(Text, nullable=False))
    user: str = Field(default="anonymous", sa_column=Column(String(256), index=True, nullable=False, default="anonymous"))
    encrypted_user_info: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    timestamp: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, index=True, nullable=False))
