from pydantic import Field
from pydantic_settings import BaseSettings
from typing import List, Optional

DEV_JWT_SECRET = "dev-secret-key-change-in-production"


class Settings(BaseSettings):
    APP_NAME: str = "School Portal Backend"
    API_V1_PREFIX: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Authentication ---
    JWT_SECRET_KEY: str = DEV_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "school-portal"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    # Brute-force protection. None means "use the environment default".
    LOGIN_MAX_ATTEMPTS: Optional[int] = None
    LOGIN_MAX_RATE_LIMIT_VIOLATIONS: Optional[int] = None
    LOGIN_RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    LOGIN_VIOLATION_WINDOW_SECONDS: int = 60 * 60
    LOGIN_SWEEP_INTERVAL_SECONDS: int = 5 * 60
    LOGIN_TEST_ACCOUNTS: List[str] = Field(
        default_factory=lambda: ["student", "teacher", "admin", "parent", "superadmin"]
    )
    START_LOGIN_SWEEPER: bool = True

    BCRYPT_ROUNDS: Optional[int] = None
    PASSWORD_MIN_LENGTH: int = 6
    PASSWORD_MAX_LENGTH: int = 100

    # --- Database ---
    POSTGRES_USER: str = "school_user"
    POSTGRES_PASSWORD: str = "school_password"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "schooldb"
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_AUTO_CREATE: bool = True

    # --- Cache ---
    CACHE_BACKEND: str = "memory"  # 'memory' or 'redis'
    CACHE_DEFAULT_TTL_SECONDS: int = 300
    CACHE_KEY_PREFIX: str = "school"
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # --- HTTP security ---
    ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])
    ENABLE_SECURITY_HEADERS: bool = True

    model_config = {
        "extra": "ignore",
        "env_file": ".env",
        "env_file_encoding": "utf-8"
    }

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def max_login_attempts(self) -> int:
        if self.LOGIN_MAX_ATTEMPTS is not None:
            return self.LOGIN_MAX_ATTEMPTS
        return 5 if self.is_production else 100

    @property
    def max_rate_limit_violations(self) -> int:
        if self.LOGIN_MAX_RATE_LIMIT_VIOLATIONS is not None:
            return self.LOGIN_MAX_RATE_LIMIT_VIOLATIONS
        return 3 if self.is_production else 50

    @property
    def bcrypt_rounds(self) -> int:
        if self.BCRYPT_ROUNDS is not None:
            return self.BCRYPT_ROUNDS
        return 12 if self.is_production else 8

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    def validate_for_startup(self) -> None:
        """Refuse to boot a production process with the development signing key."""
        if self.is_production and self.JWT_SECRET_KEY == DEV_JWT_SECRET:
            raise RuntimeError("JWT_SECRET_KEY must be set when ENVIRONMENT=production")


settings = Settings()
