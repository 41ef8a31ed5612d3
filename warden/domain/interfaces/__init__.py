from .repositories import (
    IEmailJobRepository,
    ILogRepository,
    ISessionRepository,
    IUserRepository,
    IUserTokenRepository,
)

__all__ = [
    "IEmailJobRepository",
    "ILogRepository",
    "ISessionRepository",
    "IUserRepository",
    "IUserTokenRepository",
]
