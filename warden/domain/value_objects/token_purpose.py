from enum import Enum


class TokenPurpose(str, Enum):
    """Independent single-use code slots a user can hold at the same time."""

    EMAIL_TWO_FACTOR_LOGIN = "EmailTwoFactorLogin"
    EMAIL_TWO_FACTOR_SETUP = "EmailTwoFactorSetup"
    EMAIL_VERIFICATION = "EmailVerification"
    PASSWORD_RESET = "PasswordReset"
