# agenda/config.py

from __future__ import annotations

import logging

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Единый конфиг проекта. Читает переменные окружения.
    Pydantic v2 + pydantic-settings.
    """
    model_config = SettingsConfigDict(
        case_sensitive=False,  # Имена переменных окружения не чувствительны к регистру
        extra="ignore",  # Игнорировать лишние переменные окружения
    )

    # --- Основные настройки ---
    ENVIRONMENT: str = Field("dev", description="Application environment (dev, test, prod)")

    # --- База данных ---
    DATABASE_URL: str = Field(
        "sqlite+aiosqlite:///./agenda.db",
        description="Async database connection URL (e.g., postgresql+asyncpg://...)",
    )
    # 'sql' - SQLAlchemy, 'memory' - in-process store (dev / demo)
    EVENT_STORE: str = Field("sql", description="Event store backend ('sql', 'memory')")

    # --- Redis / change notifications ---
    REDIS_URL: str = Field("redis://redis:6379/0", description="URL for Redis connection")
    CHANGE_CHANNEL: str = Field("memory", description="Change notification channel ('memory', 'redis')")
    CHANGE_CHANNEL_PREFIX: str = Field("changes", description="Prefix of pub/sub channel names")

    # --- JWT Настройки ---
    JWT_SECRET_KEY: str = Field(..., description="Secret key for signing JWT tokens")  # Обязателен
    JWT_ALGORITHM: str = Field("HS256", description="Algorithm for JWT signing")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60 * 24 * 7, description="JWT access token lifetime in minutes")  # 7 дней

    # --- Календарь ---
    RECURRENCE_MAX_STEPS: int = Field(500, description="Upper bound of recurrence steps per event")
    # 0 = понедельник ... 6 = воскресенье (как datetime.weekday())
    WEEK_STARTS_ON: int = Field(6, description="First weekday of calendar grids (0=Mon .. 6=Sun)")
    DEFAULT_EVENT_COLOR: str = Field("#6366f1", description="Color tag for events created without one")

    @field_validator("RECURRENCE_MAX_STEPS")
    @classmethod
    def _positive_cap(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("RECURRENCE_MAX_STEPS must be a positive integer")
        return value

    @field_validator("WEEK_STARTS_ON")
    @classmethod
    def _weekday(cls, value: int) -> int:
        if not 0 <= value <= 6:
            raise ValueError("WEEK_STARTS_ON must be between 0 (Monday) and 6 (Sunday)")
        return value

    @model_validator(mode="after")
    def check_backends(self) -> "Settings":
        self.EVENT_STORE = self.EVENT_STORE.lower()
        self.CHANGE_CHANNEL = self.CHANGE_CHANNEL.lower()
        if self.EVENT_STORE not in ("sql", "memory"):
            raise ValueError(f"Unknown EVENT_STORE: {self.EVENT_STORE}")
        if self.ENVIRONMENT == "prod" and self.EVENT_STORE == "memory":
            log.warning("EVENT_STORE=memory in prod: events will not survive a restart.")
        return self


# --- Создание единственного экземпляра настроек ---
try:
    settings = Settings()
    log.info("Settings loaded successfully for ENVIRONMENT=%s", settings.ENVIRONMENT)
    log.debug(
        "Loaded settings: DB URL=%s..., store=%s, change channel=%s",
        str(settings.DATABASE_URL)[:25],
        settings.EVENT_STORE,
        settings.CHANGE_CHANNEL,
    )
except Exception:
    log.exception("Failed to instantiate Settings.")
    # Если не удалось создать настройки, приложение не сможет работать
    raise


__all__ = ["Settings", "settings"]
