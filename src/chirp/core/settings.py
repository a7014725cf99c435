"""Application settings and configuration.

This module defines all configuration options for the Chirp API.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Chirp API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./chirp.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    db_connect_timeout_seconds: float = Field(default=10.0, alias="DB_CONNECT_TIMEOUT_SECONDS")
    db_pool_timeout_seconds: float = Field(default=10.0, alias="DB_POOL_TIMEOUT_SECONDS")
    auto_create_tables: bool = Field(default=True, alias="AUTO_CREATE_TABLES")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Media storage (Cloudinary-compatible upload API)
    storage_cloud_name: str | None = Field(default=None, alias="STORAGE_CLOUD_NAME")
    storage_api_key: str | None = Field(default=None, alias="STORAGE_API_KEY")
    storage_api_secret: str | None = Field(default=None, alias="STORAGE_API_SECRET")
    storage_base_url: str = Field(
        default="https://api.cloudinary.com/v1_1",
        alias="STORAGE_BASE_URL",
    )
    storage_timeout_seconds: float = Field(default=10.0, alias="STORAGE_TIMEOUT_SECONDS")
    storage_post_folder: str = Field(default="social_media", alias="STORAGE_POST_FOLDER")
    storage_profile_folder: str = Field(
        default="social_media_profile",
        alias="STORAGE_PROFILE_FOLDER",
    )
    max_upload_bytes: int = Field(default=3 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["http://localhost:5173"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def max_upload_megabytes(self) -> int:
        """Upload limit rounded down to whole megabytes, for error messages."""
        return self.max_upload_bytes // (1024 * 1024)


settings = Settings()  # type: ignore[call-arg]
