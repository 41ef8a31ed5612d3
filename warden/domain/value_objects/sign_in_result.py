from dataclasses import dataclass


@dataclass(frozen=True)
class SignInResult:
    """Outcome of a lockout-aware password check.

    ``lockout_triggered`` is true only on the attempt that set the lockout.
    """

    succeeded: bool = False
    is_locked_out: bool = False
    is_not_allowed: bool = False
    requires_two_factor: bool = False
    lockout_triggered: bool = False

    @classmethod
    def success(cls, requires_two_factor: bool = False) -> "SignInResult":
        return cls(succeeded=not requires_two_factor, requires_two_factor=requires_two_factor)

    @classmethod
    def locked_out(cls, triggered: bool = False) -> "SignInResult":
        return cls(is_locked_out=True, lockout_triggered=triggered)

    @classmethod
    def not_allowed(cls) -> "SignInResult":
        return cls(is_not_allowed=True)

    @classmethod
    def failed(cls) -> "SignInResult":
        return cls()
