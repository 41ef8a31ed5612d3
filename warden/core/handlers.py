"""
Global exception handlers for the FastAPI application.

Every error leaves the API as ``{"error": <message>}``, optionally with a
``details`` list. Messages come from the exception and are already generic on
security-sensitive paths; internal details stay in the logs.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from structlog import get_logger

from warden.core.exceptions import (
    AuthenticationError,
    DatabaseError,
    DecryptionError,
    EmailServiceError,
    PasswordPolicyError,
    PermissionError,
    UserNotFoundError,
    ValidationError,
    WardenError,
)

__all__ = [
    "validation_error_handler",
    "password_policy_error_handler",
    "request_validation_error_handler",
    "authentication_error_handler",
    "permission_error_handler",
    "not_found_error_handler",
    "email_service_error_handler",
    "database_error_handler",
    "decryption_error_handler",
    "warden_error_handler",
    "register_exception_handlers",
]

logger = get_logger(__name__)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handles `ValidationError` and its subclasses, returning `400 Bad Request`."""
    content = {"error": exc.message}
    if exc.field:
        content["details"] = [{"field": exc.field, "message": exc.message}]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)


async def password_policy_error_handler(request: Request, exc: PasswordPolicyError) -> JSONResponse:
    """Handles `PasswordPolicyError`, returning `400` with one detail per unmet rule."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": exc.message,
            "details": [{"field": exc.field, "message": violation} for violation in exc.violations],
        },
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handles malformed request bodies and parameters, returning `400 Bad Request`.

    Each pydantic error becomes ``{"field", "message"}`` where ``field`` is the
    dotted location without the leading ``body``/``query`` segment.
    """
    details = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(location), "message": error.get("msg", "Invalid value")})
    logger.info("request_validation_failed", path=request.url.path, fields=[d["field"] for d in details])
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation failed", "details": details},
    )


async def authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    """Handles `AuthenticationError`, returning a `401 Unauthorized`."""
    logger.warning(
        "Authentication failure",
        error=exc.code,
        client_ip=_client_ip(request),
        path=request.url.path,
    )
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": exc.message})


async def permission_error_handler(request: Request, exc: PermissionError) -> JSONResponse:
    logger.warning("Permission denied", client_ip=_client_ip(request), path=request.url.path)
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"error": exc.message})


async def not_found_error_handler(request: Request, exc: UserNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": exc.message})


async def email_service_error_handler(request: Request, exc: EmailServiceError) -> JSONResponse:
    """Handles `EmailServiceError`, returning a `503 Service Unavailable`."""
    logger.error(
        "Email service interaction failed",
        error_message=str(exc),
        client_ip=_client_ip(request),
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "Email service is temporarily unavailable."},
    )


async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    logger.critical("A critical database error occurred", error_message=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "A database error occurred."},
    )


async def decryption_error_handler(request: Request, exc: DecryptionError) -> JSONResponse:
    logger.error("Decryption failed", path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": exc.message},
    )


async def warden_error_handler(request: Request, exc: WardenError) -> JSONResponse:
    """Fallback for application errors without a more specific handler."""
    logger.error(
        "An unhandled application error occurred",
        error_code=exc.code,
        error_message=exc.message,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "An unexpected error occurred."},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Registers the handlers above on ``app``.

    Starlette resolves handlers by walking the exception's MRO, so subclasses
    registered here win over their bases regardless of order.
    """
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(PasswordPolicyError, password_policy_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(PermissionError, permission_error_handler)
    app.add_exception_handler(UserNotFoundError, not_found_error_handler)
    app.add_exception_handler(EmailServiceError, email_service_error_handler)
    app.add_exception_handler(DatabaseError, database_error_handler)
    app.add_exception_handler(DecryptionError, decryption_error_handler)
    app.add_exception_handler(WardenError, warden_error_handler)
