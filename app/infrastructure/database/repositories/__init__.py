"""Database repositories for data access."""

from .user_repository import UserRepository
from .school_repository import (
    SchoolRepository,
    StudentSyncResult,
    ReportCardCleanupResult,
    BackfillResult,
)

__all__ = [
    "UserRepository",
    "SchoolRepository",
    "StudentSyncResult",
    "ReportCardCleanupResult",
    "BackfillResult",
]
