"""Admin API Request and Response Schemas

Schemas for the user-administration and audit-investigation endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from warden.adapters.api.v1.auth.schemas import CsrfResponse, OkResponse


class EnforceTwoFactorRequest(BaseModel):
    """Request schema for toggling administrative 2FA enforcement."""

    enforced: bool = Field(..., description="Whether the user must use two-factor authentication")


class EnforceTwoFactorResponse(OkResponse):
    id: int
    enforced: bool


class DecryptLogRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    log_id: int = Field(..., ge=1, alias="logId")
    justification: str = Field(
        ..., min_length=10, max_length=500, description="Reason for re-identifying the user"
    )


class AuditLogItem(BaseModel):
    """One audit entry as shown to investigators."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    category: str
    action: str
    context: str
    message: str
    user: str = Field(..., description="Pseudonym of the acting identity, or anonymous/system")
    timestamp: datetime
    has_encrypted_info: bool = Field(..., alias="hasEncryptedInfo")
    decrypted_user: Optional[str] = Field(default=None, alias="decryptedUser")


class AuditLogListResponse(CsrfResponse):
    count: int
    decrypted: bool
    justification: Optional[str] = None
    logs: List[AuditLogItem]


class PseudonymSearchResponse(CsrfResponse):
    pseudonym: str
    count: int
    logs: List[AuditLogItem]


class DecryptedLogResponse(CsrfResponse):
    log_id: int = Field(..., alias="logId")
    timestamp: datetime
    action: str
    pseudonymized_user: str = Field(..., alias="pseudonymizedUser")
    decrypted_user: str = Field(..., alias="decryptedUser")
    justification: str
    decrypted_by: str = Field(..., alias="decryptedBy")
    decrypted_at: datetime = Field(..., alias="decryptedAt")
