from pathlib import Path
from typing import Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Database
    DB_URL: str = "postgresql://postgres:password@db:5432/tripdb"
    DB_ECHO: bool = False  # Set to True for SQL query logging in development

    # Connection Pool Settings
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600  # Recycle connections after 1 hour

    # Itinerary generation bounds
    MIN_ITINERARY_DAYS: int = 1
    MAX_ITINERARY_DAYS: int = 30
    MIN_RADIUS_METERS: int = 100
    MAX_RADIUS_METERS: int = 20000
    DEFAULT_ITINERARY_DAYS: int = 2
    DEFAULT_RADIUS_METERS: int = 2000

    # Weight used for categories missing from the group preference map
    NEUTRAL_PREFERENCE_WEIGHT: float = 0.0

    # Rate Limiting
    ENABLE_RATE_LIMITING: bool = True
    RATE_LIMIT_GENERATE: str = "5/minute"
    RATE_LIMIT_READ: str = "60/minute"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""  # empty disables the file handler

    # CORS
    ALLOWED_ORIGINS: Union[list, str] = ["http://localhost:3000", "http://localhost:3001"]

    @field_validator('ALLOWED_ORIGINS', mode='before')
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse ALLOWED_ORIGINS from comma-separated string or list"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    @field_validator('MAX_ITINERARY_DAYS')
    @classmethod
    def validate_max_days(cls, v: int) -> int:
        if v < 1:
            raise ValueError('MAX_ITINERARY_DAYS must be at least 1')
        return v

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parents[3] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )
