from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Optional
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./logistics.db"

    # Database Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # JWT Settings
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    BCRYPT_ROUNDS: int = 12

    # App Settings
    APP_NAME: str = "Courier Logistics API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Email/SMTP Settings
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = ""  # Defaults to SMTP_USER
    SMTP_FROM_NAME: str = "Courier Logistics"

    # Redis (cache, idempotency records, refresh tokens, job queues)
    REDIS_URL: Optional[str] = None  # e.g., "redis://localhost:6379/0"
    CACHE_ENABLED: bool = True
    CACHE_PREFIX: str = "logistics"
    CACHE_DEFAULT_TTL: int = 300  # 5 minutes for cached GET responses
    IDEMPOTENCY_TTL_SECONDS: int = 86400  # 24 hours

    # Rate limiting (fixed window, counted in the cache)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 900  # 15 minutes
    RATE_LIMIT_MAX_REQUESTS: int = 100  # Per client IP and user
    AUTH_RATE_LIMIT_MAX_FAILURES: int = 5  # Failed auth attempts per IP

    # Pricing
    DEFAULT_CITY: str = "Pokhara"  # Hub city every fare originates from

    # Reports
    REPORTS_DIR: str = "reports"
    REPORT_PAGE_SIZE: int = 2000
    REPORT_JOB_ATTEMPTS: int = 2

    # Job queue
    QUEUE_DEFAULT_ATTEMPTS: int = 3
    QUEUE_BACKOFF_MS: int = 2000  # First retry delay, doubled per attempt
    QUEUE_REMOVE_ON_COMPLETE: int = 10  # Completed jobs kept per queue
    QUEUE_REMOVE_ON_FAIL: int = 5  # Failed jobs kept per queue
    QUEUE_POLL_INTERVAL_SECONDS: float = 1.0
    QUEUE_STALLED_TIMEOUT_MS: int = 300000  # Active job with no heartbeat for 5 minutes
    RUN_WORKER_IN_PROCESS: bool = True
    SCHEDULER_ENABLED: bool = True

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
