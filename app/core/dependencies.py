"""
Module for managing and providing application dependencies.
Leverages FastAPI's dependency injection system; process-wide components
(rate limiter, cache, JWT service) are module singletons that tests override.
"""
import logging
from typing import Callable, Optional

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.errors import AuthorizationError, InvalidToken
from app.infrastructure.auth.models import RoleID
from app.infrastructure.cache.app_cache import AppCache, app_cache
from app.infrastructure.cache.class_scoped_cache import ExamVisibilityCache, SubjectAssignmentCache
from app.infrastructure.database.base import get_db
from app.infrastructure.database.models.school_models import User
from app.infrastructure.database.repositories.school_repository import SchoolRepository
from app.infrastructure.database.repositories.user_repository import UserRepository
from app.infrastructure.security.jwt_service import JWTService, jwt_service
from app.infrastructure.security.password_hasher import PasswordHasher, password_hasher
from app.infrastructure.security.rate_limiter import LoginRateLimiter, login_rate_limiter
from app.services.auth_service import Authenticator
from app.services.comment_generator import CommentGenerator
from app.services.subject_mapping_sync import SubjectMappingSyncCoordinator

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# --- Process-wide components ---

def get_rate_limiter() -> LoginRateLimiter:
    return login_rate_limiter


def get_app_cache() -> AppCache:
    return app_cache


def get_jwt_service() -> JWTService:
    return jwt_service


def get_password_hasher() -> PasswordHasher:
    return password_hasher


def get_comment_generator() -> CommentGenerator:
    return CommentGenerator()


# --- Request-scoped components ---

def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_school_repository(db: Session = Depends(get_db)) -> SchoolRepository:
    return SchoolRepository(db)


def get_exam_visibility_cache(cache: AppCache = Depends(get_app_cache)) -> ExamVisibilityCache:
    return ExamVisibilityCache(cache)


def get_subject_assignment_cache(cache: AppCache = Depends(get_app_cache)) -> SubjectAssignmentCache:
    return SubjectAssignmentCache(cache)


def get_authenticator(
    users: UserRepository = Depends(get_user_repository),
    limiter: LoginRateLimiter = Depends(get_rate_limiter),
    jwt: JWTService = Depends(get_jwt_service),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> Authenticator:
    return Authenticator(users, limiter, jwt, hasher)


def get_sync_coordinator(
    repository: SchoolRepository = Depends(get_school_repository),
    cache: AppCache = Depends(get_app_cache),
    exam_visibility: ExamVisibilityCache = Depends(get_exam_visibility_cache),
    subject_assignment: SubjectAssignmentCache = Depends(get_subject_assignment_cache),
) -> SubjectMappingSyncCoordinator:
    return SubjectMappingSyncCoordinator(repository, cache, exam_visibility, subject_assignment)


# --- Authentication ---

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    authenticator: Authenticator = Depends(get_authenticator),
) -> User:
    """Resolve the bearer token to an active user whose role is unchanged."""
    if credentials is None or not credentials.credentials:
        raise InvalidToken()
    return await authenticator.verify(credentials.credentials)


def require_roles(*roles: RoleID) -> Callable:
    """Dependency factory restricting an endpoint to the given roles."""
    allowed = {int(r) for r in roles}

    async def role_dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role_id not in allowed:
            logger.warning(f"User {current_user.id} with role {current_user.role_id} denied")
            raise AuthorizationError()
        return current_user

    return role_dependency


require_admin = require_roles(RoleID.SUPER_ADMIN, RoleID.ADMIN)
require_staff = require_roles(RoleID.SUPER_ADMIN, RoleID.ADMIN, RoleID.TEACHER)
