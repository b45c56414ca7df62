"""bcrypt password hashing with an environment-tuned cost factor."""

import logging
from typing import Optional

import bcrypt

from app.core.config import settings

logger = logging.getLogger(__name__)


class PasswordHasher:
    """Hash and verify passwords with bcrypt."""

    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds or settings.bcrypt_rounds

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify_password(self, password: str, password_hash: Optional[str]) -> bool:
        """Return False for a missing or malformed hash instead of raising."""
        if not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError as e:
            logger.warning(f"Stored password hash could not be checked: {e}")
            return False


password_hasher = PasswordHasher()
