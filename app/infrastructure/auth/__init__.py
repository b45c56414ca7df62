"""Authentication infrastructure package."""

from .models import RoleID, TokenData, LockState, LockStatus, LoginAttemptRecord

__all__ = ["RoleID", "TokenData", "LockState", "LockStatus", "LoginAttemptRecord"]
