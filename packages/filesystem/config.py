"""Read-only configuration consumed by the filesystem package."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MAX_UPLOAD_SIZE_BYTES = 100 * 1024 * 1024
DEFAULT_SIGNED_URL_TTL_SECONDS = 3600


class LocalDriverConfig(BaseModel):
    """Settings used only by the local disk driver."""

    model_config = ConfigDict(frozen=True)

    driver: Literal["local"] = "local"
    url_signer_secret: str = ""
    signed_url_ttl_seconds: int | None = None


class S3DriverConfig(BaseModel):
    """Settings used only by the S3/MinIO driver."""

    model_config = ConfigDict(frozen=True)

    driver: Literal["s3"] = "s3"
    bucket: str
    region: str = "us-east-1"
    endpoint_url: str | None = None  # Set for MinIO, None for AWS S3
    access_key_id: str | None = None
    secret_access_key: str | None = None
    cloudfront_domain: str | None = None
    signed_url_ttl_seconds: int | None = None


DriverConfig = Annotated[
    Union[LocalDriverConfig, S3DriverConfig],
    Field(discriminator="driver"),
]


class FileSystemConfig(BaseModel):
    """
    Snapshot of everything the storage layer needs.

    The temp upload area always lives under ``storage_directory`` on local
    disk, whichever driver persists the files.
    """

    model_config = ConfigDict(frozen=True)

    storage_directory: str
    app_base_url: str = "http://localhost:8000"
    max_upload_size_bytes: int = DEFAULT_MAX_UPLOAD_SIZE_BYTES
    image_mimetypes: tuple[str, ...] = ()
    max_field_index: int | None = None  # Largest list index in bracket field names
    storage: DriverConfig = Field(default_factory=LocalDriverConfig)

    @property
    def driver(self) -> str:
        return self.storage.driver
