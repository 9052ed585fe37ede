"""Abstract base class for file storage backends."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from packages.filesystem.paths import get_path_in_storage
from packages.filesystem.types import WriteFileResult

DEFAULT_CHUNK_SIZE = 64 * 1024


class FileStorageBackend(ABC):
    """
    Abstract base for file storage backends.

    Paths (local) and keys (S3) are relative to the storage root and carry
    the ``public/`` or ``private/`` partition prefix once written through
    ``write_file``/``write_file_publicly``. Every other operation takes the
    path exactly as returned by those calls.
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the name of this backend (e.g., 'local', 's3')."""
        pass

    @abstractmethod
    def get_absolute_path(self, path: str) -> str:
        """Return the backend-native location of a path in storage."""
        pass

    @abstractmethod
    async def read_file(self, path: str) -> bytes:
        """
        Read a file's content.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        pass

    @abstractmethod
    def create_read_stream(
        self, path: str, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> AsyncIterator[bytes]:
        """Yield a file's content in chunks."""
        pass

    @abstractmethod
    async def write_file(self, path: str, data: bytes | str) -> WriteFileResult:
        """Write data into the private partition."""
        pass

    @abstractmethod
    async def write_file_publicly(self, path: str, data: bytes | str) -> WriteFileResult:
        """Write data into the public partition."""
        pass

    @abstractmethod
    async def delete_file(self, path: str) -> None:
        pass

    @abstractmethod
    async def delete_files(self, paths: list[str]) -> None:
        pass

    @abstractmethod
    async def rename(self, source: str, destination: str) -> None:
        pass

    @abstractmethod
    async def copy(self, source: str, destination: str) -> None:
        """Copy a file; does nothing when source equals destination."""
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def mkdir(self, path: str) -> str:
        """Create a directory (recursively) and return its path in storage."""
        pass

    async def mkdir_public(self, path: str) -> str:
        return await self.mkdir(get_path_in_storage(path, is_public=True))

    async def mkdir_private(self, path: str) -> str:
        return await self.mkdir(get_path_in_storage(path))

    @abstractmethod
    async def rmdir(self, path: str, force_delete: bool = False) -> None:
        """
        Remove a directory.

        Args:
            path: Directory path in storage
            force_delete: Also remove the directory's content

        Raises:
            OSError: If the directory is not empty and force_delete is False
        """
        pass

    @abstractmethod
    async def is_dir(self, path: str) -> bool:
        pass

    @abstractmethod
    async def is_file(self, path: str) -> bool:
        pass

    @abstractmethod
    async def read_dir(self, path: str) -> list[str]:
        """Return the sorted names of the direct children of a directory."""
        pass

    @abstractmethod
    def get_public_url(self, path: str) -> str:
        """Return the anonymous URL of a file in the public partition."""
        pass

    @abstractmethod
    async def get_signed_url(self, path: str, ttl_seconds: int | None = None) -> str:
        """Return a time-limited URL granting read access to a file."""
        pass
