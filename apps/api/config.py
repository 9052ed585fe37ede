"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from packages.filesystem.config import (
    DEFAULT_MAX_UPLOAD_SIZE_BYTES,
    FileSystemConfig,
    LocalDriverConfig,
    S3DriverConfig,
)
from packages.filesystem.paths import resolve_storage_directory


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "File Storage Kit"
    app_version: str = "0.1.0"
    debug: bool = False
    app_base_url: str = "http://localhost:8000"
    app_root_directory: str = str(Path.cwd())

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # File Storage
    filesystem_storage_driver: Literal["local", "s3"] = "local"
    filesystem_storage_directory: str | None = None  # Defaults to <app root>/storage

    # Upload Limits
    max_upload_size_bytes: int = DEFAULT_MAX_UPLOAD_SIZE_BYTES
    uploaded_file_image_mimes: str = ""  # Extra image mimetypes, comma separated
    max_field_index: int | None = None

    # Local driver signed URLs
    local_url_signer_secret: str = ""
    local_signed_url_ttl_seconds: int | None = None

    # S3/MinIO (production)
    s3_bucket: str = ""
    s3_endpoint_url: str | None = None  # Set for MinIO, None for AWS S3
    s3_region: str = "us-east-1"
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_signed_url_ttl_seconds: int | None = None
    cloudfront_domain: str | None = None

    def filesystem_config(self) -> FileSystemConfig:
        """Build the read-only configuration consumed by the filesystem package."""
        if self.filesystem_storage_driver == "s3":
            storage = S3DriverConfig(
                bucket=self.s3_bucket,
                region=self.s3_region,
                endpoint_url=self.s3_endpoint_url,
                access_key_id=self.s3_access_key_id,
                secret_access_key=self.s3_secret_access_key,
                cloudfront_domain=self.cloudfront_domain,
                signed_url_ttl_seconds=self.s3_signed_url_ttl_seconds,
            )
        else:
            storage = LocalDriverConfig(
                url_signer_secret=self.local_url_signer_secret,
                signed_url_ttl_seconds=self.local_signed_url_ttl_seconds,
            )

        return FileSystemConfig(
            storage_directory=resolve_storage_directory(
                self.app_root_directory, self.filesystem_storage_directory
            ),
            app_base_url=self.app_base_url,
            max_upload_size_bytes=self.max_upload_size_bytes,
            max_field_index=self.max_field_index,
            image_mimetypes=tuple(
                mime.strip().lower()
                for mime in self.uploaded_file_image_mimes.split(",")
                if mime.strip()
            ),
            storage=storage,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
