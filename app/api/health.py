"""
Health check API.

- Liveness with database and cache reachability
- Cache statistics for administrators
"""

import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.dependencies import get_app_cache, get_rate_limiter, require_admin
from app.infrastructure.cache.app_cache import AppCache
from app.infrastructure.database.base import get_db
from app.infrastructure.database.models.school_models import User
from app.infrastructure.security.rate_limiter import LoginRateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_START_TIME = time.time()


@router.get("")
async def health_check(
    db: Session = Depends(get_db),
    cache: AppCache = Depends(get_app_cache),
) -> Dict[str, Any]:
    """Liveness check; reports degraded when the database or cache cannot be reached."""
    services = {"database": "healthy", "cache": "healthy"}
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Database health check failed: {e}")
        services["database"] = "unhealthy"

    if not cache.is_healthy():
        logger.warning("Cache health check failed")
        services["cache"] = "unhealthy"

    return {
        "status": "healthy" if all(v == "healthy" for v in services.values()) else "degraded",
        "environment": settings.ENVIRONMENT,
        "uptime_seconds": round(time.time() - _START_TIME, 1),
        "services": services,
    }


@router.get("/cache-stats")
async def cache_stats(
    current_user: User = Depends(require_admin),
    cache: AppCache = Depends(get_app_cache),
    limiter: LoginRateLimiter = Depends(get_rate_limiter),
) -> Dict[str, Any]:
    return {
        "cache": cache.get_stats(),
        "login_limiter": {
            "max_attempts": limiter.max_attempts,
            "max_violations": limiter.max_violations,
        },
    }
