"""Centralized application configuration via Pydantic Settings.

Loads all env vars into a typed Settings instance. Parser limits live here
so deployments can tune them without touching the parsing package.
"""

from pydantic_settings import BaseSettings
from pydantic import Field

from packages.statement_parser.text_recovery import MAX_SCAN_BYTES


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # CORS
    ALLOWED_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Comma-separated allowed origins for CORS",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Python log level")
    ENVIRONMENT: str = Field(
        default="development",
        description="Runtime environment: development, staging, production",
    )

    # App
    APP_VERSION: str = Field(default="0.1.0", description="Application version")

    # Uploads
    MAX_UPLOAD_BYTES: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Largest statement upload accepted, in bytes",
    )
    PDF_SCAN_BYTES: int = Field(
        default=MAX_SCAN_BYTES,
        gt=0,
        description="Leading bytes of a PDF examined for transaction text",
    )

    @property
    def allowed_origins(self) -> list[str]:
        """Parse comma-separated origins into a list."""
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def log_level(self) -> str:
        return self.LOG_LEVEL

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    model_config = {"env_file": ".env", "extra": "ignore"}


def get_settings() -> Settings:
    """Factory for Settings — allows test override."""
    return Settings()


# Module-level singleton; every field has a default
settings = get_settings()
