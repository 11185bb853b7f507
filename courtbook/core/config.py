"""Application configuration."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    DEBUG: bool = True

    # Booking backend
    API_BASE_URL: str = "https://dome-booking-backend-production.up.railway.app/api/v1"
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    MAX_RETRIES: int = 3

    # Facility defaults
    DEFAULT_CURRENCY: str = "cad"
    DEFAULT_TIMEZONE: str = "America/Toronto"

    # Booking rules
    SLOT_DURATION_MINUTES: int = 60
    PAST_SLOT_BUFFER_MINUTES: int = 15

    # Sessions
    SESSION_TTL_MINUTES: int = 30
    SESSION_SWEEP_INTERVAL_MINUTES: int = 1

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
