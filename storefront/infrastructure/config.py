"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Store backend
    store_backend_url: str = "http://localhost:9000"
    store_publishable_key: str = ""
    store_request_timeout: float = 10.0

    # Regions
    default_country_code: str = "us"

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
