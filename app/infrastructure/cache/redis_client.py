"""Redis client configuration and utilities."""

import logging
from typing import Optional

import redis

from app.core.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Lazily connected Redis client wrapper."""

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None,
                 db: Optional[int] = None, password: Optional[str] = None):
        self.host = host or settings.REDIS_HOST
        self.port = port or settings.REDIS_PORT
        self.db = settings.REDIS_DB if db is None else db
        self.password = password if password is not None else settings.REDIS_PASSWORD
        self.redis: Optional[redis.Redis] = None

    def connect(self) -> redis.Redis:
        """Connect to Redis server."""
        if self.redis is None:
            client = redis.Redis(
                host=self.host,
                port=self.port,
                db=self.db,
                password=self.password,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                max_connections=20
            )
            try:
                client.ping()
                logger.info("Redis connection established successfully")
            except redis.RedisError as e:
                logger.error(f"Failed to connect to Redis: {e}")
                raise
            self.redis = client
        return self.redis

    def ping(self) -> bool:
        try:
            return bool(self.connect().ping())
        except redis.RedisError:
            return False

    def close(self):
        """Close Redis connection."""
        if self.redis:
            self.redis.close()
            self.redis = None

