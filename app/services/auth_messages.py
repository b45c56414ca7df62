"""User-facing texts for login lockouts."""

from dataclasses import dataclass

RATE_LIMITED = "rate_limited"
SUSPENDED = "suspended"


@dataclass(frozen=True)
class AuthMessage:
    message: str
    description: str
    status_type: str


def suspension_message() -> AuthMessage:
    return AuthMessage(
        message=(
            "Account temporarily locked due to repeated failed attempts. "
            "Please contact the school administrator."
        ),
        description=(
            "Your account has been suspended after multiple failed login attempts. "
            "The lock lifts automatically once the failed attempts age out."
        ),
        status_type=SUSPENDED,
    )


def rate_limit_message(remaining_minutes: int) -> AuthMessage:
    unit = "minute" if remaining_minutes == 1 else "minutes"
    return AuthMessage(
        message=f"Too many login attempts. Please try again in {remaining_minutes} {unit}.",
        description=(
            "Too many failed login attempts. Your account has been temporarily locked "
            "for security reasons."
        ),
        status_type=RATE_LIMITED,
    )
