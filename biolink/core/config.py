"""Application configuration module.

This module contains settings for the link-in-bio service,
loaded from environment variables with appropriate defaults.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import Field, ValidationInfo, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent.parent

DEFAULT_SECRET_KEY = "change_this_to_a_secure_random_string_in_production"


class EnvironmentType(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Application settings loaded from environment variables with defaults.

    Settings are loaded from environment variables, with fallback to
    values in .env file if present, and finally to the default values
    specified here.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment setting
    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT

    # App Information
    APP_NAME: str = "Biolink"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Link-in-bio pages with buffered click analytics"

    # API Configuration
    API_PREFIX: str = "/api"
    DEBUG: bool = False

    # CORS settings
    CORS_ORIGINS: Union[List[str], str] = ["*"]

    # PostgreSQL settings
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "biolink"
    DATABASE_URL: Optional[str] = None  # Overrides the POSTGRES_* components

    # PostgreSQL pool settings
    POSTGRES_POOL_SIZE: int = 20
    POSTGRES_POOL_MAX_OVERFLOW: int = 10
    POSTGRES_POOL_TIMEOUT: int = 30
    POSTGRES_POOL_RECYCLE: int = 300
    DB_ECHO: bool = False

    # Redis settings
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0
    REDIS_URL: Optional[str] = None  # Overrides the REDIS_* components
    REDIS_MAX_CONNECTIONS: int = 20

    # Click buffer keys
    ANALYTICS_QUEUE_KEY: str = "analytics:queue"
    LIVE_COUNTER_KEY_PREFIX: str = "clicks:"

    # Geolocation headers set by the edge platform
    GEO_COUNTRY_HEADER: str = "x-vercel-ip-country"
    GEO_CITY_HEADER: str = "x-vercel-ip-city"

    # Analytics read path
    ANALYTICS_CACHE_KEY_PREFIX: str = "analytics:"
    ANALYTICS_CACHE_TTL: int = 300  # seconds
    ANALYTICS_WINDOW_DAYS: int = 7
    ANALYTICS_TOP_LIMIT: int = 5

    # Sync worker
    SYNC_BATCH_SIZE: int = Field(default=100, ge=1)
    SYNC_MAX_BATCH_SIZE: int = 1000
    SYNC_INTERVAL_SECONDS: int = 60
    SYNC_SCHEDULER_ENABLED: bool = True
    CRON_SECRET: str = ""

    # Security
    SECRET_KEY: str = DEFAULT_SECRET_KEY
    TOKEN_ALGORITHM: str = "HS256"
    TOKEN_EXPIRE_MINUTES: int = 10080

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_FILENAME: str = "app.log"
    LOG_ROTATION: str = "10 MB"
    LOG_RETENTION: str = "7 days"
    LOG_FORMAT: str = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {name}:{function}:{line} | {message}"
    LOG_JSON: bool = True

    # Scheduler settings
    SCHEDULER_JOB_COALESCE: bool = True  # Combine pending executions of a job into one
    SCHEDULER_JOB_MAX_INSTANCES: int = 1
    SCHEDULER_MISFIRE_GRACE_TIME: int = 30  # seconds

    # Validators
    @field_validator("SECRET_KEY")
    def validate_secret_key(cls, v: str, info: ValidationInfo) -> str:
        env_value = info.data.get("ENVIRONMENT", EnvironmentType.DEVELOPMENT)
        if v == DEFAULT_SECRET_KEY and env_value == EnvironmentType.PRODUCTION:
            logger.warning("Using default SECRET_KEY in production environment! This is a security risk.")
        return v

    @field_validator("CORS_ORIGINS")
    def validate_list_or_string(cls, v: Union[List[str], str]) -> List[str]:
        """Convert comma-separated string to list if needed."""
        if isinstance(v, str):
            if not v.strip():
                return []
            if v == "*":
                return ["*"]
            return [item.strip() for item in v.split(",")]
        return v

    @field_validator("DATABASE_URL", "REDIS_URL", mode="before")
    def empty_string_as_none(cls, v: Any) -> Optional[str]:
        if v == "":
            return None
        return v

    # Computed fields
    @computed_field
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """Construct the SQLAlchemy database URI from settings or use override."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @computed_field
    def REDIS_URI(self) -> str:
        """Construct the Redis URI from settings or use override."""
        if self.REDIS_URL:
            return self.REDIS_URL
        password_part = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{password_part}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def is_development(self) -> bool:
        """Development mode relaxes the cron secret check."""
        return self.ENVIRONMENT == EnvironmentType.DEVELOPMENT


# Create a singleton instance of the settings
settings = Settings()
