"""
File system facade.

Single entry point combining the uploader with the storage backend of the
currently configured driver.
"""

from collections.abc import AsyncIterator, Callable
from contextvars import Token
from typing import Any

from packages.filesystem.config import FileSystemConfig
from packages.filesystem.exceptions import DriverMismatchError
from packages.filesystem.paths import create_storage_directory_if_not_exists
from packages.filesystem.storage import FileStorageBackend, LocalFileStorage, get_storage_backend
from packages.filesystem.storage.base import DEFAULT_CHUNK_SIZE
from packages.filesystem.types import FieldTree, IncomingRequest, UploadedFile, WriteFileResult
from packages.filesystem.uploader import (
    FileUploader,
    begin_temp_upload_session,
    end_temp_upload_session,
)
from packages.filesystem.validation import validate_image


class FileSystem:
    """
    Uniform file API over the local and S3 drivers.

    The backend is resolved from ``config_provider()`` on every call, so a
    configuration change applies to the next operation.
    """

    def __init__(self, config_provider: Callable[[], FileSystemConfig]):
        self._config_provider = config_provider
        self.uploader = FileUploader(config_provider)

    @property
    def config(self) -> FileSystemConfig:
        return self._config_provider()

    @property
    def storage(self) -> FileStorageBackend:
        return get_storage_backend(self.config)

    @property
    def driver(self) -> str:
        return self.config.driver

    async def create_storage_directory_if_not_exists(self) -> None:
        await create_storage_directory_if_not_exists(self.config)

    # =========================================================================
    # Uploads
    # =========================================================================

    @staticmethod
    def begin_temp_upload_session() -> Token:
        return begin_temp_upload_session()

    @staticmethod
    def end_temp_upload_session(token: Token) -> None:
        end_temp_upload_session(token)

    def get_temp_upload_directory(self) -> str:
        return self.uploader.get_temp_upload_directory()

    async def clear_temp_upload_directory(self) -> None:
        await self.uploader.clear_temp_upload_directory()

    def reset_temp_upload_dir_id(self) -> None:
        self.uploader.reset_temp_upload_dir_id()

    def parse_form_data(self, request: IncomingRequest) -> FieldTree:
        return self.uploader.parse_form_data(request)

    async def store_file(
        self,
        uploaded_file: UploadedFile,
        directory: str | None = None,
        filename: str | None = None,
    ) -> str:
        return await self.uploader.store_file(uploaded_file, directory=directory, filename=filename)

    async def store_file_publicly(
        self,
        uploaded_file: UploadedFile,
        directory: str | None = None,
        filename: str | None = None,
    ) -> str:
        return await self.uploader.store_file_publicly(
            uploaded_file, directory=directory, filename=filename
        )

    async def store_files(
        self,
        uploaded_files: list[UploadedFile],
        directory: str | None = None,
    ) -> list[str]:
        return await self.uploader.store_files(uploaded_files, directory=directory)

    # =========================================================================
    # Files
    # =========================================================================

    def get_absolute_path(self, path: str) -> str:
        return self.storage.get_absolute_path(path)

    async def read_file(self, path: str) -> bytes:
        return await self.storage.read_file(path)

    def create_read_stream(
        self, path: str, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> AsyncIterator[bytes]:
        return self.storage.create_read_stream(path, chunk_size)

    async def write_file(self, path: str, data: bytes | str) -> WriteFileResult:
        return await self.storage.write_file(path, data)

    async def write_file_publicly(self, path: str, data: bytes | str) -> WriteFileResult:
        return await self.storage.write_file_publicly(path, data)

    async def delete_file(self, path: str) -> None:
        await self.storage.delete_file(path)

    async def delete_files(self, paths: list[str]) -> None:
        await self.storage.delete_files(paths)

    async def rename(self, source: str, destination: str) -> None:
        await self.storage.rename(source, destination)

    async def copy(self, source: str, destination: str) -> None:
        await self.storage.copy(source, destination)

    async def exists(self, path: str) -> bool:
        return await self.storage.exists(path)

    # =========================================================================
    # Directories
    # =========================================================================

    async def mkdir(self, path: str) -> str:
        return await self.storage.mkdir(path)

    async def mkdir_public(self, path: str) -> str:
        return await self.storage.mkdir_public(path)

    async def mkdir_private(self, path: str) -> str:
        return await self.storage.mkdir_private(path)

    async def rmdir(self, path: str, force_delete: bool = False) -> None:
        await self.storage.rmdir(path, force_delete=force_delete)

    async def is_dir(self, path: str) -> bool:
        return await self.storage.is_dir(path)

    async def is_file(self, path: str) -> bool:
        return await self.storage.is_file(path)

    async def read_dir(self, path: str) -> list[str]:
        return await self.storage.read_dir(path)

    # =========================================================================
    # URLs
    # =========================================================================

    def get_public_url(self, path: str) -> str:
        return self.storage.get_public_url(path)

    async def get_signed_url(self, path: str, ttl_seconds: int | None = None) -> str:
        return await self.storage.get_signed_url(path, ttl_seconds)

    def _local_storage(self) -> LocalFileStorage:
        storage = self.storage
        if not isinstance(storage, LocalFileStorage):
            raise DriverMismatchError(expected="local")
        return storage

    def build_url_to_be_signed(self, path: str) -> str:
        return self._local_storage().build_url_to_be_signed(path)

    def verify_signed_url(self, signed_url: str) -> bool:
        """
        Check a signed URL issued by the local driver.

        Raises:
            DriverMismatchError: If the local driver is not active
        """
        return self._local_storage().verify_signed_url(signed_url)

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_image(self, value: Any, field: str, message: str | None = None) -> None:
        """Validate images, also accepting the configured extra image mimetypes."""
        validate_image(value, field, message=message, extra_mimetypes=self.config.image_mimetypes)
