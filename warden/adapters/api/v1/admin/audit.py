"""Audit trail investigation endpoints.

Open to Admin and AuditInvestigator users. Entries show pseudonyms unless
the investigator supplies a justification and asks for decryption; every
access is itself recorded in the audit trail.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from warden.adapters.api.v1.admin.schemas import (
    AuditLogItem,
    AuditLogListResponse,
    DecryptLogRequest,
    DecryptedLogResponse,
    PseudonymSearchResponse,
)
from warden.adapters.api.v1.auth.utils import finish_with_csrf
from warden.core.dependencies.auth import CsrfProtected, CurrentSession, require_roles
from warden.domain.entities import Log, Role, User
from warden.infrastructure.dependency_injection.auth_dependencies import CleanAuditInvestigationService, Csrf

router = APIRouter(prefix="/audit")

Investigator = Depends(require_roles(Role.ADMIN, Role.AUDIT_INVESTIGATOR))


def _item(log: Log, decrypted_user: Optional[str] = None) -> AuditLogItem:
    return AuditLogItem(
        id=log.id,
        category=log.category,
        action=log.action,
        context=log.context,
        message=log.message,
        user=log.user,
        timestamp=log.timestamp,
        has_encrypted_info=bool(log.encrypted_user_info),
        decrypted_user=decrypted_user,
    )


@router.get("", response_model=AuditLogListResponse, summary="List audit entries, newest first")
async def list_audit_logs(
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    audit: CleanAuditInvestigationService,
    decrypt: bool = Query(False),
    justification: Optional[str] = Query(None, max_length=500),
    limit: int = Query(100),
    from_date: Optional[datetime] = Query(None, alias="fromDate"),
    to_date: Optional[datetime] = Query(None, alias="toDate"),
    investigator: User = Investigator,
) -> AuditLogListResponse:
    views = await audit.list_audit_logs(investigator, decrypt, justification, limit, from_date, to_date)
    return AuditLogListResponse(
        count=len(views),
        decrypted=decrypt,
        justification=justification if decrypt else None,
        logs=[_item(view.log, view.decrypted_user) for view in views],
        csrf_token=finish_with_csrf(response, context, csrf),
    )


@router.post(
    "/decrypt",
    response_model=DecryptedLogResponse,
    dependencies=[CsrfProtected],
    summary="Re-identify the user behind one audit entry",
    responses={404: {"description": "Unknown entry"}, 400: {"description": "Entry has no encrypted identity"}},
)
async def decrypt_log_entry(
    payload: DecryptLogRequest,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    audit: CleanAuditInvestigationService,
    investigator: User = Investigator,
) -> DecryptedLogResponse:
    entry = await audit.decrypt_entry(investigator, payload.log_id, payload.justification)
    return DecryptedLogResponse(
        log_id=entry.log.id,
        timestamp=entry.log.timestamp,
        action=entry.log.action,
        pseudonymized_user=entry.log.user,
        decrypted_user=entry.decrypted_user,
        justification=entry.justification,
        decrypted_by=entry.decrypted_by,
        decrypted_at=entry.decrypted_at,
        csrf_token=finish_with_csrf(response, context, csrf),
    )


@router.get("/by-pseudonym/{pseudonym}", response_model=PseudonymSearchResponse)
async def search_by_pseudonym(
    pseudonym: str,
    response: Response,
    context: CurrentSession,
    csrf: Csrf,
    audit: CleanAuditInvestigationService,
    limit: int = Query(100),
    investigator: User = Investigator,
) -> PseudonymSearchResponse:
    logs = await audit.search_by_pseudonym(investigator, pseudonym, limit)
    return PseudonymSearchResponse(
        pseudonym=pseudonym,
        count=len(logs),
        logs=[_item(log) for log in logs],
        csrf_token=finish_with_csrf(response, context, csrf),
    )
