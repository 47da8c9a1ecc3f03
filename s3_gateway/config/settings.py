"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock mode enables local development without an object storage account.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..infrastructure.storage.client import (
    DEFAULT_ENDPOINT_URL,
    DEFAULT_REGION,
    StorageConfig,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Frozen: read once at startup and never mutated afterwards.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "S3 Gateway API"
    api_version: str = "v1"

    # S3 Configuration
    aws_access_key: str = Field(
        default="",
        description="Static access key ID. Empty falls back to the boto3 credential chain."
    )
    aws_secret_key: str = Field(
        default="",
        description="Static secret access key."
    )
    aws_region: str = Field(
        default=DEFAULT_REGION,
        description="Region identifier used for signing and bucket placement."
    )
    aws_endpoint_url: str = Field(
        default=DEFAULT_ENDPOINT_URL,
        description="S3 endpoint. Point at MinIO, Ceph RGW, etc. for other providers."
    )
    aws_force_path_style: bool = Field(
        default=True,
        description="Use path-style addressing (bucket in path, not hostname)."
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use in-memory storage instead of a real provider. Enables local dev without credentials."
    )

    # Local staging
    destination_folder: str = Field(
        default="./staging",
        description="Directory for staged uploads and downloaded objects."
    )
    max_upload_size_mb: int = Field(
        default=100,
        description="Maximum multipart upload size in MB."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def staging_dir(self) -> Path:
        return Path(self.destination_folder)

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    def storage_config(self) -> StorageConfig:
        """Provider connection settings for the storage client factory."""
        return StorageConfig(
            access_key_id=self.aws_access_key,
            secret_access_key=self.aws_secret_key,
            region=self.aws_region,
            endpoint_url=self.aws_endpoint_url,
            force_path_style=self.aws_force_path_style,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Return the names of required settings that are unset.

        Credentials are only required outside mock mode.
        """
        missing = []

        if not self.storage_mock_mode:
            if not self.aws_access_key:
                missing.append("AWS_ACCESS_KEY")
            if not self.aws_secret_key:
                missing.append("AWS_SECRET_KEY")
            if not self.aws_endpoint_url:
                missing.append("AWS_ENDPOINT_URL")

        if not self.destination_folder:
            missing.append("DESTINATION_FOLDER")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process. For tests, call
    get_settings.cache_clear() to reset.
    """
    return Settings()
