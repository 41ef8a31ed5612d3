from typing import List

from warden.core.config.settings import settings
from warden.core.exceptions import PasswordPolicyError


class PasswordPolicy:
    """Password complexity rules."""

    def __init__(
        self,
        min_length: int = settings.PASSWORD_MIN_LENGTH,
        max_length: int = settings.PASSWORD_MAX_LENGTH,
        require_digit: bool = settings.PASSWORD_REQUIRE_DIGIT,
        require_uppercase: bool = settings.PASSWORD_REQUIRE_UPPERCASE,
        require_lowercase: bool = settings.PASSWORD_REQUIRE_LOWERCASE,
        require_non_alphanumeric: bool = settings.PASSWORD_REQUIRE_NON_ALPHANUMERIC,
    ):
        self.min_length = min_length
        self.max_length = max_length
        self.require_digit = require_digit
        self.require_uppercase = require_uppercase
        self.require_lowercase = require_lowercase
        self.require_non_alphanumeric = require_non_alphanumeric

    def violations(self, password: str) -> List[str]:
        problems = []
        if len(password) < self.min_length:
            problems.append(f"Password must be at least {self.min_length} characters long")
        if len(password) > self.max_length:
            problems.append(f"Password must be at most {self.max_length} characters long")
        if self.require_digit and not any(c.isdigit() for c in password):
            problems.append("Password must contain at least one digit")
        if self.require_uppercase and not any(c.isupper() for c in password):
            problems.append("Password must contain at least one uppercase letter")
        if self.require_lowercase and not any(c.islower() for c in password):
            problems.append("Password must contain at least one lowercase letter")
        if self.require_non_alphanumeric and all(c.isalnum() for c in password):
            problems.append("Password must contain at least one non-alphanumeric character")
        return problems

    def validate(self, password: str) -> None:
        """Raises:
            PasswordPolicyError: listing every violated rule.
        """
        problems = self.violations(password)
        if problems:
            raise PasswordPolicyError(problems)
