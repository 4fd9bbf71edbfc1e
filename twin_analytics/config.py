"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "twin-analytics"
    log_level: str = "INFO"

    # Time machine
    default_horizon_months: int = 12
    max_horizon_months: int = 120


settings = Settings()
