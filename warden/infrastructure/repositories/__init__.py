from .email_job_repository import EmailJobRepository
from .log_repository import LogRepository
from .session_repository import SessionRepository
from .user_repository import UserRepository
from .user_token_repository import UserTokenRepository

__all__ = [
    "EmailJobRepository",
    "LogRepository",
    "SessionRepository",
    "UserRepository",
    "UserTokenRepository",
]
