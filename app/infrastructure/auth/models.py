"""Authentication models and data structures."""

from datetime import datetime
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

__all__ = ["RoleID", "TokenData", "LockState", "LockStatus", "LoginAttemptRecord"]


class RoleID(IntEnum):
    """Role identifiers stored on users and embedded in tokens."""
    SUPER_ADMIN = 1
    ADMIN = 2
    TEACHER = 3
    STUDENT = 4
    PARENT = 5

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass
class TokenData:
    """Claims of a verified access token."""
    user_id: str
    role_id: int
    issued_at: datetime
    expires_at: datetime
    jti: str


@dataclass
class LoginAttemptRecord:
    """Failed login attempts for one identifier."""
    count: int
    last_attempt: float


class LockState(Enum):
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    SUSPENDED = "suspended"


@dataclass(frozen=True)
class LockStatus:
    """Outcome of a lockout check for an identifier."""
    state: LockState
    remaining_minutes: Optional[int] = None

    @property
    def is_ok(self) -> bool:
        return self.state is LockState.OK
