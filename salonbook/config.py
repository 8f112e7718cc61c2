"""
Application configuration using pydantic-settings.
Every tunable of the availability engine lives here; per-tenant values
(buffer, slot interval, booking window) override these defaults from the
business's booking_settings.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_base_url: str = "http://localhost:8000"
    log_level: str = "INFO"
    allowed_origins: str = ""  # Comma-separated CORS origins (auto-includes localhost in dev)

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/salonbook"
    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Redis (booking locks)
    redis_url: str = "redis://localhost:6379/0"

    # Tenant defaults
    default_timezone: str = "America/Sao_Paulo"
    default_phone_region: str = "BR"

    # Availability engine
    default_buffer_minutes: int = 60  # Used when neither professional nor business sets one
    default_slot_interval_minutes: int = 30
    default_max_advance_days: int = 60
    available_now_min_duration: int = 15
    available_now_services_limit: int = 3  # Services shown per professional card

    # Booking race guard
    booking_lock_ttl_seconds: int = 30
    booking_lock_wait_seconds: float = 5.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
