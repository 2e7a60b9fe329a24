"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here. No scattered magic strings.
"""

from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode. Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        custody_repository_backend: "postgres" for the database adapter,
            "memory" for the in-memory adapter seeded with demo data.
        default_custodian_marker: Substring of a custodian's name that
            marks its service as the default custody service.
        default_page_size: Page size when the caller gives none.
        max_page_size: Upper bound on the page size a caller may request.
        write_rate_limit: slowapi limit applied to create, update and delete.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    project_name: str = "VaultDesk"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    custody_repository_backend: Literal["postgres", "memory"] = "postgres"
    default_custodian_marker: str = "home delivery"
    default_page_size: int = 20
    max_page_size: int = 100
    write_rate_limit: str = "30/minute"

    database_url: Optional[str] = None
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "vaultdesk"

    def get_database_dsn(self) -> str:
        """Return the effective DSN for the custody database.

        Priority:
        1. Explicit `DATABASE_URL`
        2. Build DSN from postgres_* values (useful for Docker Compose or local setups)
        """
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}@"
            f"{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


settings = Settings()
