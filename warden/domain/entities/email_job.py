from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlmodel import Column, Field, SQLModel

from warden.utils.clock import utcnow


class EmailJobStatus(str, Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SENT = "Sent"
    FAILED = "Failed"
    RETRYING = "Retrying"


class EmailJob(SQLModel, table=True):
    """An outbox entry for one outbound email.

    Lifecycle: Pending -> Processing -> Sent, or Retrying (with a backoff
    ``scheduled_for``) up to ``max_retry_attempts``, then terminally Failed.
    ``template_data`` is the JSON-serialized template context.
    """

    __tablename__ = "email_jobs"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    template_name: str = Field(sa_column=Column(String(100), nullable=False))
    subject: str = Field(sa_column=Column(String(500), nullable=False))
    to_email: str = Field(sa_column=Column(String(320), nullable=False))
    to_name: Optional[str] = Field(default=None, sa_column=Column(String(256), nullable=True))
    template_data: str = Field(default="{}", sa_column=Column(Text, nullable=False))
    status: str = Field(
        default=EmailJobStatus.PENDING.value,
        sa_column=Column(String(20), index=True, nullable=False, default=EmailJobStatus.PENDING.value),
    )
    retry_count: int = Field(default=0)
    max_retry_attempts: int = Field(default=3)
    last_error: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))
    scheduled_for: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, index=True, nullable=False))
    sent_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    triggered_by: Optional[str] = Field(default=None, sa_column=Column(String(256), nullable=True))
