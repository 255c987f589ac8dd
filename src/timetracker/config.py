"""Configuration management for the time tracker service."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Time tracker data directory
TIMETRACKER_DIR = Path.home() / ".timetracker"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TIMETRACKER_",
        # Later files override earlier ones
        env_file=("app.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # HTTP server
    app_host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP server binds to",
    )
    app_port: int = Field(
        default=8080,
        validation_alias=AliasChoices("TIMETRACKER_APP_PORT", "APP_PORT"),
        description="Port the HTTP server listens on",
    )

    # Storage
    database_path: Path | None = Field(
        default=None,
        description="SQLite database file (default: ~/.timetracker/timetracker.db)",
    )

    # People lookup service used to enrich new users
    # GETBYPASSPORTDOMAIN is the key used by existing app.env files
    people_api_url: str = Field(
        default="http://localhost:8081/info",
        validation_alias=AliasChoices("TIMETRACKER_PEOPLE_API_URL", "GETBYPASSPORTDOMAIN"),
        description="URL of the passport lookup endpoint",
    )
    people_api_timeout: float = Field(
        default=10.0,
        description="Timeout in seconds for passport lookup requests",
    )

    log_level: str = Field(
        default="INFO",
        description="Log level for the service (DEBUG, INFO, WARNING, ERROR)",
    )

    def get_database_path(self) -> Path:
        """Get the database path, using default if not set."""
        if self.database_path:
            return self.database_path
        return TIMETRACKER_DIR / "timetracker.db"


# Global settings instance
settings = Settings()
