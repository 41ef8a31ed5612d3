"""Temporary one-time code record.

The record is what a ``TemporaryTokenService`` slot holds: the SHA-256 digest
of the code (never the code itself), its absolute expiry and the attempt
counters. It is immutable; every state change produces a new record.
"""

import base64
import hashlib
import json
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

DEFAULT_MAX_ATTEMPTS = 3


def hash_code(code: str) -> bytes:
    return hashlib.sha256(code.encode("utf-8")).digest()


@dataclass(frozen=True)
class TemporaryToken:
    code_hash: bytes
    expires_at: datetime
    failed_attempts: int = 0
    max_attempts: int = DEFAULT_MAX_ATTEMPTS

    @classmethod
    def issue(cls, code: str, expires_in: timedelta, now: datetime) -> "TemporaryToken":
        return cls(code_hash=hash_code(code), expires_at=now + expires_in)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    @property
    def attempts_exhausted(self) -> bool:
        return self.failed_attempts >= self.max_attempts

    def matches(self, code: str) -> bool:
        """Compare in constant time against the stored digest."""
        return secrets.compare_digest(self.code_hash, hash_code(code))

    def with_failed_attempt(self) -> "TemporaryToken":
        return replace(self, failed_attempts=self.failed_attempts + 1)

    def to_json(self) -> str:
        return json.dumps(
            {
                "code_hash": base64.b64encode(self.code_hash).decode("ascii"),
                "expires_at": self.expires_at.isoformat(),
                "failed_attempts": self.failed_attempts,
                "max_attempts": self.max_attempts,
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> "TemporaryToken":
        """Parse a stored record.

        Raises:
            ValueError: If the payload is not a well-formed record or its hash is empty.
        """
        try:
            data = json.loads(raw)
            code_hash = base64.b64decode(data["code_hash"], validate=True)
            token = cls(
                code_hash=code_hash,
                expires_at=datetime.fromisoformat(data["expires_at"]),
                failed_attempts=int(data["failed_attempts"]),
                max_attempts=int(data["max_attempts"]),
            )
        except (TypeError, KeyError, ValueError) as e:
            raise ValueError(f"Malformed temporary token record: {type(e).__name__}") from e
        if not token.code_hash:
            raise ValueError("Malformed temporary token record: empty code hash")
        return token
