"""
Application configuration and settings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Supabase Configuration
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None

    # Storage backend: "supabase" or "memory" (offline/demo mode)
    STORAGE_BACKEND: str = "supabase"

    # When true, failed writes are logged and reported instead of raised
    TOLERATE_WRITE_FAILURE: bool = False

    # Redis Configuration (empty -> in-process dawn summary store)
    REDIS_URL: str = ""
    DAWN_SUMMARY_TTL_SECONDS: int = 60 * 60 * 48

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Anima Forge Chronos API"
    API_VERSION: str = "1.0.0"

    # CORS
    CORS_ORIGINS: List[str] = [
        "*"
    ]

    # Server
    SERVER_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    # Time Configuration
    TIMEZONE: str = "UTC"
    # ISO date (YYYY-MM-DD); pins the clock for manual testing
    CHRONOS_FIXED_DATE: Optional[str] = None

    # Progression & Reset Configuration
    DAILY_RECORD_RETENTION: int = 30
    PATH_ARCHETYPE_DEFAULT: str = "default"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
