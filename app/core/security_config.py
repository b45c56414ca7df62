"""
HTTP security configuration.

Provides:
- CORS configuration per environment
- Security headers middleware
"""

import logging
from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings

logger = logging.getLogger(__name__)


class SecurityLevel(Enum):
    """Security configuration levels."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


@dataclass
class SecurityConfig:
    """Security configuration settings."""
    level: SecurityLevel = SecurityLevel.DEVELOPMENT
    allowed_origins: List[str] = field(default_factory=list)
    enable_security_headers: bool = True

    def __post_init__(self):
        self.allowed_origins = list(settings.ALLOWED_ORIGINS)
        self.enable_security_headers = settings.ENABLE_SECURITY_HEADERS
        if settings.is_production:
            self.level = SecurityLevel.PRODUCTION
            self.enable_security_headers = True
            if not self.allowed_origins:
                logger.warning("Production mode enabled but no origins configured. CORS will be restrictive.")


security_config: Optional[SecurityConfig] = None


def get_security_config() -> SecurityConfig:
    """Get or create security configuration."""
    global security_config
    if security_config is None:
        security_config = SecurityConfig()
    return security_config


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    def __init__(self, app: Callable, config: SecurityConfig):
        super().__init__(app)
        self.config = config

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        if self.config.enable_security_headers:
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
            # Authenticated responses carry per-user data
            response.headers.setdefault("Cache-Control", "no-store")
            if self.config.level == SecurityLevel.PRODUCTION:
                response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


def get_cors_config() -> Dict[str, Any]:
    """Get CORS configuration based on security level."""
    config = get_security_config()
    if config.level == SecurityLevel.PRODUCTION:
        return {
            "allow_origins": config.allowed_origins,
            "allow_credentials": True,
            "allow_methods": ["GET", "POST", "PUT", "DELETE", "PATCH"],
            "allow_headers": ["Authorization", "Content-Type", "Accept", "Origin"],
            "expose_headers": ["Retry-After"],
        }
    return {
        "allow_origins": ["*"],
        "allow_credentials": False,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
        "expose_headers": ["Retry-After"],
    }


def configure_security_middleware(app):
    """Configure security middleware for the application."""
    config = get_security_config()
    app.add_middleware(SecurityHeadersMiddleware, config=config)
    logger.info(f"Security middleware configured for {config.level.value} environment")


__all__ = [
    "SecurityConfig",
    "SecurityLevel",
    "configure_security_middleware",
    "get_cors_config",
    "get_security_config",
]
