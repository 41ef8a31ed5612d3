"""Timing defenses against account enumeration.

Paths that must not reveal whether an account exists pad their response time
with a bounded random delay drawn from the OS CSPRNG, so that the fast
"already exists" branch is indistinguishable from the slow "create" branch.
"""

import asyncio
import secrets

from warden.core.config.settings import settings


def random_delay_seconds(
    min_ms: int = settings.ENUMERATION_MIN_DELAY_MS,
    max_jitter_ms: int = settings.ENUMERATION_MAX_JITTER_MS,
) -> float:
    return (min_ms + secrets.randbelow(max_jitter_ms + 1)) / 1000


async def apply_random_delay(
    min_ms: int = settings.ENUMERATION_MIN_DELAY_MS,
    max_jitter_ms: int = settings.ENUMERATION_MAX_JITTER_MS,
) -> None:
    await asyncio.sleep(random_delay_seconds(min_ms, max_jitter_ms))

