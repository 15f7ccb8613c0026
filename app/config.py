from datetime import datetime
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.constants import BLACKOUT_PERIOD_END, BLACKOUT_PERIOD_START

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Postgres settings
    DATABASE_URL: str

    # SendGrid settings
    SENDGRID_API_KEY: str | None = None
    SENDGRID_BASE_URL: str = "https://api.sendgrid.com/v3"
    MAIL_SENDER_EMAIL: str = "support@example.org"
    MAIL_SENDER_NAME: str = "Volunteer Team"
    MAIL_REQUEST_TIMEOUT: float = 10.0

    # Dynamic template ids, one per inactivity tier
    SENDGRID_VOLUNTEER_INACTIVE_THIRTY_DAYS_TEMPLATE: str | None = None
    SENDGRID_VOLUNTEER_INACTIVE_SIXTY_DAYS_TEMPLATE: str | None = None
    SENDGRID_VOLUNTEER_INACTIVE_NINETY_DAYS_TEMPLATE: str | None = None

    # =================================================================
    # INACTIVITY EMAIL JOB
    # =================================================================
    INACTIVITY_EMAIL_ENABLED: bool = True
    INACTIVITY_EMAIL_SCHEDULE_HOUR: int = 14  # UTC
    BLACKOUT_PERIOD_START: datetime = BLACKOUT_PERIOD_START
    BLACKOUT_PERIOD_END: datetime = BLACKOUT_PERIOD_END

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 1
    DB_POOL_MAX_SIZE: int = 4
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        The worker runs one job at a time, so development keeps the pool tiny.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update({"min_size": 1, "max_size": 2, "timeout": 15.0})

        return config

    def get_inactivity_template_ids(self) -> dict[int, str | None]:
        """Template id per inactivity tier, keyed by days inactive."""
        return {
            30: self.SENDGRID_VOLUNTEER_INACTIVE_THIRTY_DAYS_TEMPLATE,
            60: self.SENDGRID_VOLUNTEER_INACTIVE_SIXTY_DAYS_TEMPLATE,
            90: self.SENDGRID_VOLUNTEER_INACTIVE_NINETY_DAYS_TEMPLATE,
        }


settings = Settings()
