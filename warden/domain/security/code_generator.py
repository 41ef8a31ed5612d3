"""Cryptographically secure one-time code generation."""

import secrets
import struct

from warden.core.exceptions import ValidationError

ALPHANUMERIC_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


class SecureCodeGenerator:
    """Generates numeric and alphanumeric codes from the OS CSPRNG."""

    NUMERIC_MIN_LENGTH = 4
    NUMERIC_MAX_LENGTH = 10
    ALPHANUMERIC_MIN_LENGTH = 8
    ALPHANUMERIC_MAX_LENGTH = 128

    def generate_numeric_code(self, length: int = 6) -> str:
        """Return a ``length``-digit code in ``[10^(length-1), 10^length - 1]``.

        Raises:
            ValidationError: If ``length`` is outside 4..10.
        """
        if not self.NUMERIC_MIN_LENGTH <= length <= self.NUMERIC_MAX_LENGTH:
            raise ValidationError(
                f"Code length must be between {self.NUMERIC_MIN_LENGTH} and {self.NUMERIC_MAX_LENGTH} digits",
                code="invalid_code_length",
            )
        low = 10 ** (length - 1)
        high = 10**length - 1
        # A 10-digit range exceeds 32 bits, so draw 64.
        (value,) = struct.unpack(">Q", secrets.token_bytes(8))
        return str(low + value % (high - low + 1)).zfill(length)

    def generate_alphanumeric_code(self, length: int = 32) -> str:
        """Return ``length`` characters drawn from A-Z and 0-9.

        Raises:
            ValidationError: If ``length`` is outside 8..128.
        """
        if not self.ALPHANUMERIC_MIN_LENGTH <= length <= self.ALPHANUMERIC_MAX_LENGTH:
            raise ValidationError(
                f"Code length must be between {self.ALPHANUMERIC_MIN_LENGTH} and {self.ALPHANUMERIC_MAX_LENGTH} characters",
                code="invalid_code_length",
            )
        return "".join(ALPHANUMERIC_ALPHABET[b % len(ALPHANUMERIC_ALPHABET)] for b in secrets.token_bytes(length))
