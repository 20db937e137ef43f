"""
Application Settings and Configuration Management

Uses pydantic-settings for type-safe configuration from environment variables.
"""

from typing import Annotated, List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    app_name: str = "Surge Predictor"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    debug: bool = Field(default=False)
    backend_port: int = Field(default=8000, validation_alias="BACKEND_PORT")

    # CORS
    # NoDecode lets CORS_ORIGINS be a plain comma-separated string
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://localhost:8000",
        ],
        validation_alias="CORS_ORIGINS"
    )

    # Events directory
    events_service_url: str = Field(default="http://localhost:5001", validation_alias="EVENTS_SERVICE_URL")
    events_timeout_seconds: float = Field(default=5.0, gt=0, validation_alias="EVENTS_TIMEOUT_SECONDS")

    # Weather provider (Open-Meteo)
    weather_base_url: str = Field(default="https://api.open-meteo.com", validation_alias="WEATHER_BASE_URL")
    weather_latitude: float = Field(default=51.5, ge=-90, le=90, validation_alias="WEATHER_LATITUDE")
    weather_longitude: float = Field(default=-0.1, ge=-180, le=180, validation_alias="WEATHER_LONGITUDE")
    weather_timeout_seconds: float = Field(default=3.0, gt=0, validation_alias="WEATHER_TIMEOUT_SECONDS")
    weather_cache_ttl_seconds: int = Field(default=1800, ge=0, validation_alias="WEATHER_CACHE_TTL_SECONDS")

    # Upstream resilience
    upstream_max_retries: int = Field(default=1, ge=0, le=5, validation_alias="UPSTREAM_MAX_RETRIES")

    # Forecast defaults
    default_pub_id: str = Field(default="PUB-001", validation_alias="DEFAULT_PUB_ID")
    default_forecast_hours: int = Field(default=8, ge=1, validation_alias="DEFAULT_FORECAST_HOURS")
    max_forecast_hours: int = Field(default=48, ge=1, le=168, validation_alias="MAX_FORECAST_HOURS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is valid"""
        allowed = ["development", "staging", "production", "test"]
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("events_service_url", "weather_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.environment == "development"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance (FastAPI dependency-injection compatible)."""
    return settings
