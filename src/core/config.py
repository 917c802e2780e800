"""
Application settings loaded from the environment
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulerSettings(BaseModel):
    """Periodic job configuration."""

    enabled: bool = True
    reminder_minute: int = Field(default=0, ge=0, le=59)
    advance_minute: int = Field(default=5, ge=0, le=59)
    misfire_grace_seconds: int = 300


class LimitSettings(BaseModel):
    """Request throttling configuration."""

    rate_limit_rpm: int = 120


class PushSettings(BaseModel):
    """VAPID credentials for web push delivery."""

    vapid_public_key: Optional[str] = None
    vapid_private_key: Optional[str] = None
    vapid_subject: str = "mailto:admin@example.com"
    ttl_seconds: int = 60 * 60 * 24

    @property
    def configured(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)


class EmailSettings(BaseModel):
    """SMTP configuration for reminder emails."""

    enabled: bool = False
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    from_email: Optional[str] = None
    from_name: str = "Subscription Reminders"
    app_url: str = "http://localhost:3000"

    @property
    def configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)


class ReminderSettings(BaseModel):
    """Reminder engine tuning."""

    timezone: str = "UTC"
    advance_max_iterations: int = 520
    daily_display_limit: int = 2
    alarm_min_seconds: int = 60
    notification_hour: int = Field(default=9, ge=0, le=23)
    client_refresh_seconds: int = 60 * 60


class ClientSettings(BaseModel):
    """Headless reminder client."""

    api_url: str = "http://localhost:8000"
    token: Optional[str] = None
    store_path: str = "~/.subscription-reminders/state.json"


class Settings(BaseSettings):
    """
    Global settings object

    Nested groups are read with a double underscore delimiter, for example
    ``PUSH__VAPID_PUBLIC_KEY`` or ``SCHEDULER__ENABLED``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    PROJECT_NAME: str = "Subscription Reminders"
    ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_PREFIX: str = "/api"
    CORS_ORIGINS: List[str] = ["*"]

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "reminders"
    DATABASE_URI: Optional[str] = None
    DB_ECHO: bool = False

    REDIS_URI: str = "redis://localhost:6379/0"

    JWT_SECRET: str = "change-me"
    JWT_ALG: str = "HS256"
    CRON_SECRET: Optional[str] = None

    scheduler: SchedulerSettings = SchedulerSettings()
    limits: LimitSettings = LimitSettings()
    push: PushSettings = PushSettings()
    email: EmailSettings = EmailSettings()
    reminders: ReminderSettings = ReminderSettings()
    client: ClientSettings = ClientSettings()

    @model_validator(mode="after")
    def _assemble_database_uri(self) -> "Settings":
        if not self.DATABASE_URI:
            self.DATABASE_URI = (
                f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )
        return self


settings = Settings()
