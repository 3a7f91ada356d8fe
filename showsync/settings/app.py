"""Application settings powered by Pydantic BaseSettings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    db_path: Path = Field(
        default=Path("state/showsync.sqlite"), validation_alias="SHOWSYNC_DB_PATH"
    )
    client_id_param: str = Field(
        default="CATALOG_CLIENT_ID", validation_alias="CATALOG_CLIENT_ID_PARAM"
    )
    client_secret_param: str = Field(
        default="CATALOG_CLIENT_SECRET",  # noqa: S105
        validation_alias="CATALOG_CLIENT_SECRET_PARAM",
    )
    market: str = Field(default="US", validation_alias="CATALOG_MARKET")
    api_base_url: str = Field(
        default="https://api.spotify.com/v1", validation_alias="CATALOG_API_BASE_URL"
    )
    token_url: str = Field(
        default="https://accounts.spotify.com/api/token",  # noqa: S105
        validation_alias="CATALOG_TOKEN_URL",
    )
    refresh_max_pages: int = Field(
        default=2, ge=1, le=20, validation_alias="CATALOG_REFRESH_MAX_PAGES"
    )
    http_timeout_seconds: float = Field(
        default=15.0, ge=1.0, le=300.0, validation_alias="CATALOG_HTTP_TIMEOUT_SECONDS"
    )


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
