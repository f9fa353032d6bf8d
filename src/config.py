from functools import lru_cache

import pytz
from apscheduler.triggers.cron import CronTrigger
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Environment
    environment: str = "development"  # "development" or "production"

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/free_games.db"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False

    # Catalog
    catalog_locale: str = "it-IT"
    catalog_country: str = "IT"
    fetch_timeout: float = 30.0
    display_timezone: str = "Europe/Rome"  # end dates are shown in this zone

    # Scheduler (crontab: minute hour day month day_of_week)
    check_schedule: str = "0 18 * * *"
    startup_delay_seconds: int = 5

    # Notifications
    telegram_bot_token: str = ""
    notification_enabled: bool = True
    message_delay_seconds: float = 0.5
    recipient_delay_seconds: float = 1.0

    # Admin
    admin_api_key: str = ""

    @field_validator("check_schedule")
    @classmethod
    def validate_check_schedule(cls, value: str) -> str:
        try:
            CronTrigger.from_crontab(value)
        except ValueError as e:
            raise ValueError(f"Invalid cron expression {value!r}: {e}") from e
        return value

    @field_validator("display_timezone")
    @classmethod
    def validate_display_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as e:
            raise ValueError(f"Unknown timezone {value!r}") from e
        return value

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def sync_database_url(self) -> str:
        return self.database_url.replace("+aiosqlite", "")


@lru_cache
def get_settings() -> Settings:
    return Settings()
