"""Repository interfaces for abstracting data persistence in the domain layer.

These abstract base classes are the "ports" domain services depend on. The
SQLAlchemy implementations in ``warden.infrastructure.repositories`` are the
adapters. Tests substitute mocks built with ``Mock(spec=...)``.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from warden.domain.entities import EmailJob, Log, Session, User, UserToken


class IUserRepository(ABC):
    """Persistence for the ``User`` aggregate and its role assignments."""

    @abstractmethod
    async def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[User]:
        """Retrieves a user by username, case-insensitively."""
        raise NotImplementedError

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Retrieves a user by email address, case-insensitively."""
        raise NotImplementedError

    @abstractmethod
    async def add(self, user: User) -> User:
        """Persists a new user.

        Raises:
            DuplicateUserError: If the username or email is already taken.
        """
        raise NotImplementedError

    @abstractmethod
    async def save(self, user: User) -> User:
        raise NotImplementedError

    @abstractmethod
    async def get_roles(self, user_id: int) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    async def add_role(self, user_id: int, role: str) -> None:
        """Grants a role. Granting a role the user already holds is a no-op."""
        raise NotImplementedError


class IUserTokenRepository(ABC):
    """Named per-user token slots with optimistic versioning.

    Every write bumps ``version``. The conditional operations succeed only
    when the stored version still equals the one the caller read, which
    makes read-check-write sequences safe without application-level locks.
    """

    @abstractmethod
    async def get(self, user_id: int, login_provider: str, name: str) -> Optional[UserToken]:
        raise NotImplementedError

    @abstractmethod
    async def set(self, user_id: int, login_provider: str, name: str, value: str) -> None:
        """Creates or unconditionally overwrites a slot."""
        raise NotImplementedError

    @abstractmethod
    async def update_if_version(self, token_id: int, expected_version: int, value: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def delete_if_version(self, token_id: int, expected_version: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def remove(self, user_id: int, login_provider: str, name: str) -> None:
        """Deletes a slot. Removing an absent slot is not an error."""
        raise NotImplementedError


class ISessionRepository(ABC):
    """Server-side session store."""

    @abstractmethod
    async def add(self, session: Session) -> Session:
        raise NotImplementedError

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> Optional[Session]:
        raise NotImplementedError

    @abstractmethod
    async def save(self, session: Session) -> Session:
        raise NotImplementedError

    @abstractmethod
    async def revoke(self, token_hash: str, now: datetime) -> bool:
        """Marks a session revoked. Returns False if there was nothing active to revoke."""
        raise NotImplementedError


class ILogRepository(ABC):
    """Append-only audit trail storage."""

    @abstractmethod
    async def add(self, log: Log) -> Log:
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, log_id: int) -> Optional[Log]:
        raise NotImplementedError

    @abstractmethod
    async def list_by_category(
        self,
        category: str,
        limit: int,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[Log]:
        """Newest first."""
        raise NotImplementedError

    @abstractmethod
    async def list_by_user(self, pseudonym: str, limit: int) -> List[Log]:
        """Newest first."""
        raise NotImplementedError


class IEmailJobRepository(ABC):
    """Outbox storage for the email queue."""

    @abstractmethod
    async def add(self, job: EmailJob) -> EmailJob:
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, job_id: int) -> Optional[EmailJob]:
        raise NotImplementedError

    @abstractmethod
    async def save(self, job: EmailJob) -> EmailJob:
        raise NotImplementedError

    @abstractmethod
    async def get_due(self, now: datetime, limit: int) -> List[EmailJob]:
        """Pending or Retrying jobs scheduled at or before ``now``, oldest first."""
        raise NotImplementedError
