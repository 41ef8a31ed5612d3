from typing import Optional

from sqlalchemy import String, Text, UniqueConstraint
from sqlmodel import Column, Field, SQLModel


class UserToken(SQLModel, table=True):
    """A named per-user token slot.

    One row per ``(user_id, login_provider, name)``. ``version`` increases on
    every write so that callers can make conditional updates: a write that
    names a stale version affects no rows.
    """

    __tablename__ = "user_tokens"
    __table_args__ = (
        UniqueConstraint("user_id", "login_provider", "name", name="uq_user_tokens_slot"),
        {"extend_existing": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    login_provider: str = Field(sa_column=Column(String(64), nullable=False))
    name: str = Field(sa_column=Column(String(64), nullable=False))
    value: str = Field(sa_column=Column(Text, nullable=False))
    version: int = Field(default=1)
