"""
Authentication service.

Handles:
- Credential checks behind the login rate limiter
- Access token issuance and verification against the current user record
- Password changes
"""

import logging
from typing import Any, Dict, Optional

from app.core.config import settings
from app.core.errors import (
    AccountDeactivated,
    AuthenticationError,
    InvalidCredentials,
    RateLimitedError,
    RoleChanged,
    SuspendedError,
    UserNotFound,
    ValidationError,
)
from app.infrastructure.auth.models import LockState
from app.infrastructure.database.models.school_models import User
from app.infrastructure.database.repositories.user_repository import UserRepository
from app.infrastructure.security.jwt_service import JWTService
from app.infrastructure.security.password_hasher import PasswordHasher
from app.infrastructure.security.rate_limiter import LoginRateLimiter
from app.services.auth_messages import rate_limit_message, suspension_message

logger = logging.getLogger(__name__)


def user_payload(user: User) -> Dict[str, Any]:
    """Public view of a user as returned by the login and profile endpoints."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "roleId": user.role_id,
        "profileImageUrl": user.profile_image_url or None,
        "mustChangePassword": bool(user.must_change_password),
    }


class Authenticator:
    """
    Rate-limited credential verification and token lifecycle.

    Absent users, deactivated users and wrong passwords all surface as the same
    ``InvalidCredentials`` error; the concrete reason is only logged.
    """

    def __init__(
        self,
        user_repo: UserRepository,
        limiter: LoginRateLimiter,
        jwt_service: JWTService,
        hasher: PasswordHasher,
    ):
        self.users = user_repo
        self.limiter = limiter
        self.jwt = jwt_service
        self.hasher = hasher

    async def authenticate(self, identifier: str, password: str) -> Dict[str, Any]:
        """Check credentials and return ``{"token", "user"}`` on success."""
        key = self.limiter.normalize_key(identifier)
        is_test_account = self.limiter.is_test_account(key)

        status = self.limiter.check(key)
        if status.state is LockState.SUSPENDED:
            logger.warning(f"Login refused for suspended identifier '{key}'")
            msg = suspension_message()
            raise SuspendedError(msg.message, details=msg.description)
        if status.state is LockState.RATE_LIMITED:
            self.limiter.add_violation(key)
            logger.warning(f"Login rate limited for '{key}' ({status.remaining_minutes} min remaining)")
            msg = rate_limit_message(status.remaining_minutes)
            raise RateLimitedError(status.remaining_minutes, msg.message)

        user = await self.users.get_user_by_email(identifier) or await self.users.get_user_by_username(identifier)

        reason: Optional[str] = None
        if user is None:
            reason = "unknown identifier"
        elif not user.is_active:
            reason = "account deactivated"
        elif not self.hasher.verify_password(password, user.password_hash):
            reason = "password mismatch"

        if reason is not None:
            if not is_test_account:
                record = self.limiter.record_failure(key)
                logger.warning(f"Failed login for '{key}': {reason} (attempt {record.count})")
            else:
                logger.info(f"Failed login for test account '{key}': {reason}")
            raise InvalidCredentials()

        self.limiter.clear(key)
        token = self.jwt.generate_token(user.id, user.role_id)
        logger.info(f"User {user.id} logged in")
        return {"token": token, "user": user_payload(user)}

    async def verify(self, token: str) -> User:
        """Resolve a bearer token to its user, rejecting stale tokens."""
        data = self.jwt.decode_token(token)

        user = await self.users.get_user(data.user_id)
        if user is None:
            logger.warning(f"Token rejected: user {data.user_id} no longer exists")
            raise UserNotFound()
        if not user.is_active:
            logger.warning(f"Token rejected: user {user.id} is deactivated")
            raise AccountDeactivated()
        if user.role_id != data.role_id:
            logger.warning(
                f"Token rejected: role of user {user.id} changed from {data.role_id} to {user.role_id}"
            )
            raise RoleChanged()
        return user

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not self.hasher.verify_password(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")
        if not settings.PASSWORD_MIN_LENGTH <= len(new_password) <= settings.PASSWORD_MAX_LENGTH:
            raise ValidationError(
                f"Password must be between {settings.PASSWORD_MIN_LENGTH} "
                f"and {settings.PASSWORD_MAX_LENGTH} characters"
            )

        await self.users.update_user(user.id, {
            "password_hash": self.hasher.hash_password(new_password),
            "must_change_password": False,
        })
        logger.info(f"Password changed for user {user.id}")

    async def logout(self, user: User) -> Dict[str, str]:
        # Tokens are short-lived and not tracked server-side.
        logger.info(f"User {user.id} logged out")
        return {"message": "Logged out successfully"}
