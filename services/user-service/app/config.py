from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import os


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime configuration values exposed to FastAPI components."""

    app_name: str = "user-service"
    version: str = "0.1.0"
    environment: str = os.getenv("APP_ENV", "production").lower()
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    http_host: str = os.getenv("HTTP_HOST", "0.0.0.0")
    http_port: int = int(os.getenv("HTTP_PORT", "4000"))
    store_backend: str = os.getenv("STORE_BACKEND", "postgres").lower()
    database_url: str = os.getenv("POSTGRES_URL", "")
    db_pool_min_size: int = int(os.getenv("DB_POOL_MIN_SIZE", "1"))
    db_pool_max_size: int = int(os.getenv("DB_POOL_MAX_SIZE", "10"))
    db_pool_timeout_seconds: float = float(os.getenv("DB_POOL_TIMEOUT_SECONDS", "5"))
    rate_limit_requests: int = int(os.getenv("RATE_LIMIT_REQUESTS", "100"))
    rate_limit_window_seconds: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900"))
    rate_limit_backend: str = os.getenv("RATE_LIMIT_BACKEND", "memory").lower()
    redis_url: str = os.getenv("REDIS_URL", "")
    cors_allow_origins: tuple[str, ...] = field(
        default_factory=lambda: _split_csv(os.getenv("CORS_ALLOW_ORIGINS", "*"))
    )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def validate(self) -> None:
        """Fail fast on settings the service cannot start with."""
        if self.store_backend not in {"postgres", "memory"}:
            raise ValueError(f"STORE_BACKEND must be 'postgres' or 'memory', got {self.store_backend!r}")
        if self.store_backend == "postgres" and not self.database_url:
            raise ValueError("POSTGRES_URL must be defined")
        if self.http_port <= 0:
            raise ValueError("HTTP_PORT must be a positive integer")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings instance for the running process."""
    return Settings()
