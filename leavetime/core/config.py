from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application configuration settings.
    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Airport procedure windows (time to be at the airport before departure)
    DOMESTIC_PROCEDURE_MINUTES: int = 90
    INTERNATIONAL_PROCEDURE_MINUTES: int = 180

    # Buffer policy
    # Free tier buffers are automatic and keyed by domestic/international only
    FREE_DOMESTIC_BUFFER_MINUTES: int = 15
    FREE_INTERNATIONAL_BUFFER_MINUTES: int = 30
    PRO_DEFAULT_BUFFER_MINUTES: int = 20
    PRO_MIN_BUFFER_MINUTES: int = 0
    PRO_MAX_BUFFER_MINUTES: int = 60

    # Transport ETA
    ROUTING_API_BASE_URL: str = "https://router.project-osrm.org"
    ROUTING_API_TIMEOUT: float = 10.0
    ETA_FALLBACK_ENABLED: bool = True
    ETA_FALLBACK_UNCERTAINTY: float = 1.2

    # Calendar scanning
    SCAN_DAYS_AHEAD: int = 90
    LOCAL_CALENDAR_FILE: Optional[str] = None

    # Google Calendar API
    GOOGLE_CALENDAR_API_BASE_URL: str = "https://www.googleapis.com/calendar/v3"
    GOOGLE_CALENDAR_ACCESS_TOKEN: Optional[str] = None
    GOOGLE_CALENDAR_TIMEOUT: float = 30.0
    GOOGLE_CALENDAR_MAX_RESULTS: int = 250

    # Display refresh cadence (seconds)
    GO_MODE_REFRESH_SECONDS: int = 60
    PREPARE_REFRESH_SECONDS: int = 300
    UPCOMING_REFRESH_SECONDS: int = 900
    TIMELINE_LOOKAHEAD_HOURS: int = 4
    PREPARE_WINDOW_HOURS: int = 24

    # Current flight snapshot (Redis)
    REDIS_URL: str = "redis://localhost:6379/0"
    ENABLE_REDIS_SNAPSHOT: bool = False
    SNAPSHOT_KEY_PREFIX: str = "leavetime:snapshot"

    # Synchronization Settings
    SYNC_INTERVAL_MINUTES: int = 15
    ENABLE_SCHEDULER: bool = True

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8080"]

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    # Monitoring Configuration
    ENABLE_METRICS: bool = True

    # Debug
    DEBUG: bool = False


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.
    This function is cached to avoid reading .env file multiple times.
    """
    return Settings()
