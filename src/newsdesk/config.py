"""
Configuration management for the Newsdesk backend.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database configuration
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "newsdesk_dev"
    POSTGRES_USER: str = "newsdesk"
    POSTGRES_PASSWORD: str = ""

    # Service configuration
    SERVICE_HOST: str = "0.0.0.0"
    SERVICE_PORT: int = 8010
    LOG_LEVEL: str = "INFO"

    # Connection pool (see database/session.py)
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_ECHO: bool = False  # log every SQL statement

    # Category catalog source (external CMS backend)
    CATALOG_BASE_URL: str = "http://localhost:5000"
    CATALOG_PATH: str = "/api/categories"
    CATALOG_TIMEOUT: float = 10.0  # seconds
    CATALOG_CACHE_SECONDS: int = 300  # 0 = refetch on every request

    # Transient UI notices (failed toggles etc.)
    NOTICE_TTL_SECONDS: float = 3.0

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def database_url(self) -> str:
        """Construct PostgreSQL connection URL."""
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def async_database_url(self) -> str:
        """Construct async PostgreSQL connection URL."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


# Global settings instance
settings = Settings()
