"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    debug: bool = Field(default=False, description="Enable debug mode")
    version: str = Field(default="0.1.0", description="Application version")
    api_v1_str: str = Field(default="/api/v1", description="API v1 prefix")
    project_name: str = Field(
        default="OSCAL Workbench",
        description="Project name"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated origins allowed to call the API from a browser"
    )

    # OSCAL settings
    oscal_version: str = Field(
        default="1.1.2",
        description="Newest OSCAL model version the parser has been checked against"
    )

    # Reference resolution settings
    fetch_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for a single document fetch"
    )
    user_agent: str = Field(
        default="oscal-workbench/0.1.0",
        description="User-Agent header sent with document fetches"
    )
    follow_redirects: bool = Field(
        default=True,
        description="Follow HTTP redirects when fetching documents"
    )
    rewrite_github_blob_urls: bool = Field(
        default=True,
        description="Rewrite github.com blob URLs to raw.githubusercontent.com"
    )

    # File processing settings
    max_upload_size: int = Field(
        default=50 * 1024 * 1024,  # 50MB
        description="Maximum upload file size in bytes"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="json",
        description="Log format (json|text)"
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
