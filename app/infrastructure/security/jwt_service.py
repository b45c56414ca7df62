"""
JWT service for portal access tokens.

Handles:
- Access token generation bound to a user id and role id
- Signature, expiry and issuer validation
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from app.core.config import settings
from app.core.errors import InvalidToken
from app.infrastructure.auth.models import TokenData

logger = logging.getLogger(__name__)


@dataclass
class JWTConfig:
    """JWT configuration."""
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    issuer: str = "school-portal"

    @classmethod
    def from_settings(cls) -> "JWTConfig":
        return cls(
            secret_key=settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            access_token_expire_minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
            issuer=settings.JWT_ISSUER,
        )


class JWTService:
    """Issues and decodes signed, short-lived access tokens."""

    def __init__(self, config: Optional[JWTConfig] = None):
        self.config = config or JWTConfig.from_settings()
        self.jwt_stats = {
            'tokens_generated': 0,
            'tokens_validated': 0,
            'failed_validations': 0,
        }

    def generate_token(self, user_id: str, role_id: int) -> str:
        """Generate an access token embedding the user id and role id."""
        now = datetime.now(timezone.utc)
        payload = {
            'sub': str(user_id),
            'role_id': int(role_id),
            'iat': int(now.timestamp()),
            'exp': int((now + timedelta(minutes=self.config.access_token_expire_minutes)).timestamp()),
            'iss': self.config.issuer,
            'jti': secrets.token_urlsafe(16),
        }
        token = jwt.encode(payload, self.config.secret_key, algorithm=self.config.algorithm)
        self.jwt_stats['tokens_generated'] += 1
        logger.debug(f"Generated access token for user {user_id}")
        return token

    def decode_token(self, token: str) -> TokenData:
        """Decode and validate a token; raises ``InvalidToken`` on any failure."""
        self.jwt_stats['tokens_validated'] += 1
        try:
            payload = jwt.decode(
                token,
                self.config.secret_key,
                algorithms=[self.config.algorithm],
                issuer=self.config.issuer,
                options={"require": ["sub", "exp", "iat"]},
            )
            return TokenData(
                user_id=str(payload['sub']),
                role_id=int(payload['role_id']),
                issued_at=datetime.fromtimestamp(payload['iat'], timezone.utc),
                expires_at=datetime.fromtimestamp(payload['exp'], timezone.utc),
                jti=payload.get('jti', ''),
            )
        except jwt.ExpiredSignatureError:
            self.jwt_stats['failed_validations'] += 1
            logger.warning("Token has expired")
            raise InvalidToken()
        except jwt.InvalidTokenError as e:
            self.jwt_stats['failed_validations'] += 1
            logger.warning(f"Invalid token: {e}")
            raise InvalidToken()
        except (KeyError, TypeError, ValueError) as e:
            self.jwt_stats['failed_validations'] += 1
            logger.warning(f"Token claims malformed: {e}")
            raise InvalidToken()


jwt_service = JWTService()
