"""Factories for user accounts in tests."""

from __future__ import annotations

from typing import List, Optional

from faker import Faker
from sqlalchemy.ext.asyncio import AsyncSession

from warden.domain.entities.user import Role, TwoFactorMethod, User
from warden.domain.security.signed_tokens import SignedTokenService
from warden.domain.services.identity.identity_service import IdentityService, new_security_stamp
from warden.infrastructure.repositories import UserRepository, UserTokenRepository

fake = Faker()

DEFAULT_PASSWORD = "CorrectHorse42Battery"


def create_fake_user(
    id: Optional[int] = None,
    username: Optional[str] = None,
    email: Optional[str] = None,
    email_confirmed: bool = True,
    two_factor_method: TwoFactorMethod = TwoFactorMethod.NONE,
    two_factor_enforced: bool = False,
) -> User:
    """Build an unsaved User entity for tests that mock the repositories.

    Args:
        id: User ID, defaults to a random integer.
        username: Username, defaults to a fake username.
        email: Email, defaults to a fake email.
        email_confirmed: Whether the address is confirmed.
        two_factor_method: Enrolled second factor; anything but NONE enables 2FA.
        two_factor_enforced: Administrative 2FA enforcement flag.
    """
    username = username if username is not None else fake.unique.user_name()
    email = email if email is not None else fake.unique.email()
    return User(
        id=id if id is not None else fake.random_int(min=1, max=10000),
        username=username,
        normalized_username=username.upper(),
        email=email,
        normalized_email=email.upper(),
        hashed_password="not-a-real-hash",
        email_confirmed=email_confirmed,
        security_stamp=new_security_stamp(),
        two_factor_enabled=two_factor_method != TwoFactorMethod.NONE,
        two_factor_method=two_factor_method.value,
        two_factor_enforced=two_factor_enforced,
    )


def identity_service_for(session: AsyncSession) -> IdentityService:
    return IdentityService(UserRepository(session), UserTokenRepository(session), SignedTokenService())


async def create_user_in_db(
    session: AsyncSession,
    username: Optional[str] = None,
    email: Optional[str] = None,
    password: str = DEFAULT_PASSWORD,
    email_confirmed: bool = True,
    roles: Optional[List[Role]] = None,
) -> User:
    """Persist a user through the identity service, so hashing and normalization are real."""
    identity = identity_service_for(session)
    return await identity.create_user(
        username if username is not None else fake.unique.user_name().replace(".", "_")[:40],
        email if email is not None else fake.unique.email(),
        password,
        email_confirmed=email_confirmed,
        roles=roles,
    )
