"""
Upkeep - Configuration settings.

Loads from environment variables with sensible defaults.
"""

from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite:///./upkeep.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Frontend - comma-separated list in .env, e.g. CORS_ORIGINS=http://localhost:3000,http://example.com
    cors_origins: str = ""

    # Due-soon lookahead window in days. One global value; there is no per-asset override.
    due_soon_days: int = 7

    # Sweep (scan + dispatch) cadence for the in-process timer and due_check_runner.py; <= 0 disables the timer
    due_check_interval_hours: float = 24
    due_check_on_startup: bool = True

    # IANA zone used to turn timezone-aware timestamps into calendar days
    timezone: str = "UTC"

    # Maintenance notifications go to everyone holding this role
    maintenance_recipient_role: str = "admin"

    # Create the follow-up Scheduled record when a recurring record is completed
    auto_schedule_next: bool = True

    # Optional push hook: every new notification is POSTed here as JSON
    notification_webhook_url: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
