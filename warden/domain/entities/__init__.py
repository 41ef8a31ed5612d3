from .email_job import EmailJob, EmailJobStatus
from .log import Log, LogCategory
from .session import Session
from .user import Role, TwoFactorMethod, User, UserRole
from .user_token import UserToken

__all__ = [
    "EmailJob",
    "EmailJobStatus",
    "Log",
    "LogCategory",
    "Role",
    "Session",
    "TwoFactorMethod",
    "User",
    "UserRole",
    "UserToken",
]
