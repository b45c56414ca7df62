"""Repository for user lookups used by authentication."""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.infrastructure.database.models.school_models import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Data access for portal users."""

    def __init__(self, db_session: Session):
        self.db = db_session

    async def get_user(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        return (
            self.db.query(User)
            .filter(func.lower(User.email) == email.strip().lower())
            .first()
        )

    async def get_user_by_username(self, username: str) -> Optional[User]:
        if not username:
            return None
        return (
            self.db.query(User)
            .filter(func.lower(User.username) == username.strip().lower())
            .first()
        )

    async def update_user(self, user_id: str, updates: Dict[str, Any]) -> Optional[User]:
        """Apply column updates to a user and commit."""
        user = await self.get_user(user_id)
        if user is None:
            return None
        for field_name, value in updates.items():
            if not hasattr(User, field_name):
                raise AttributeError(f"User has no column '{field_name}'")
            setattr(user, field_name, value)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(user)
        logger.debug(f"Updated user {user_id}: {sorted(updates)}")
        return user
