"""
config/settings.py
Application settings loaded from environment variables.
Uses Pydantic BaseSettings for validation and type safety.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────
    APP_NAME: str = "Luxor Tours Platform"
    APP_ENV: str = "development"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── Server ───────────────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 1    # Substrate writes are last-writer-wins across workers

    # ── Storage Substrate ────────────────────────────────────
    STORAGE_BACKEND: Literal["memory", "redis", "sql"] = "memory"
    STORAGE_KEY_PREFIX: str = "luxor:"

    # ── Redis ────────────────────────────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_READ_RETRIES: int = 3

    # ── Database ─────────────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./luxor_store.db"

    # ── Frontend ─────────────────────────────────────────────
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # ── Business Config ──────────────────────────────────────
    RECOMMENDATION_LIMIT: int = 6
    RECENT_BOOKINGS_LIMIT: int = 5
    ADMIN_INBOX_USER_ID: str = "admin"
    PLACEHOLDER_IMAGE_URL: str = "https://images.unsplash.com/photo-1553913861-c0fddf2619ee?w=800"

    @property
    def allowed_origins_list(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance. Import `settings` or call this."""
    return Settings()


settings = get_settings()
