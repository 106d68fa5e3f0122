"""
Application settings
Read from environment variables (and an optional .env file)
"""
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "HotelPMS"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Persistence store
    DATABASE_URL: str = "sqlite:///./hotelpms.db"

    # Bearer token verification
    SECRET_KEY: str = "hotelpms-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # Optimistic update / undo
    UNDO_WINDOW_SECONDS: float = 5.0

    # Workflow rules (per-hotel override through HotelSettings)
    PREVENT_CLEANING_WITH_DND: bool = True

    # Admin notification hook
    NOTIFY_ADMIN_URL: str = ""
    NOTIFY_TIMEOUT_SECONDS: float = 10.0

    # Query defaults
    HISTORY_PAGE_SIZE: int = 50
    ACTIVITY_LIMIT: int = 100
    RECENT_NOTES_HOURS: int = 48

    model_config = ConfigDict(env_file=".env", case_sensitive=True)


# Process-wide default settings
settings = Settings()
