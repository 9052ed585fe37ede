"""Local disk file storage backend."""

import asyncio
import logging
import shutil
import stat
from collections.abc import AsyncIterator
from pathlib import Path

import aiofiles
import aiofiles.os

from packages.filesystem.config import FileSystemConfig, LocalDriverConfig
from packages.filesystem.paths import (
    get_path_in_storage,
    remove_leading_path_sep,
    remove_public_storage_identifier_from,
)
from packages.filesystem.signer import LocalUrlSigner
from packages.filesystem.storage.base import DEFAULT_CHUNK_SIZE, FileStorageBackend
from packages.filesystem.types import WriteFileResult

logger = logging.getLogger(__name__)


class LocalFileStorage(FileStorageBackend):
    """
    Local disk storage backend.

    Paths are relative to the storage root. Files under ``public/`` are
    served as static files; everything else is reachable only through a
    signed URL.
    """

    def __init__(self, config: FileSystemConfig):
        """
        Initialize local file storage.

        Args:
            config: Filesystem configuration whose driver is ``local``
        """
        self.config = config
        self.base_path = Path(config.storage_directory)
        driver_config = config.storage
        if not isinstance(driver_config, LocalDriverConfig):
            driver_config = LocalDriverConfig()
        self.signer = LocalUrlSigner(
            secret=driver_config.url_signer_secret,
            app_base_url=config.app_base_url,
            default_ttl_seconds=driver_config.signed_url_ttl_seconds,
        )

    @property
    def backend_name(self) -> str:
        return "local"

    def get_absolute_path(self, path: str) -> str:
        return str(self.base_path / remove_leading_path_sep(path))

    # =========================================================================
    # URLs
    # =========================================================================

    def get_public_url(self, path: str) -> str:
        return f"{self.config.app_base_url.rstrip('/')}/{remove_public_storage_identifier_from(path)}"

    def build_url_to_be_signed(self, path: str) -> str:
        return self.signer.build_url_to_be_signed(path)

    async def get_signed_url(self, path: str, ttl_seconds: int | None = None) -> str:
        return self.signer.sign(self.build_url_to_be_signed(path), ttl_seconds)

    def verify_signed_url(self, signed_url: str) -> bool:
        return self.signer.verify(signed_url)

    # =========================================================================
    # Files
    # =========================================================================

    async def read_file(self, path: str) -> bytes:
        async with aiofiles.open(self.get_absolute_path(path), "rb") as f:
            return await f.read()

    async def create_read_stream(
        self, path: str, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> AsyncIterator[bytes]:
        async with aiofiles.open(self.get_absolute_path(path), "rb") as f:
            while True:
                chunk = await f.read(chunk_size)
                if not chunk:
                    break
                yield chunk

    async def _write(self, path_in_storage: str, data: bytes | str) -> WriteFileResult:
        absolute_filepath = self.get_absolute_path(path_in_storage)
        await aiofiles.os.makedirs(Path(absolute_filepath).parent, exist_ok=True)

        content = data.encode("utf-8") if isinstance(data, str) else data
        async with aiofiles.open(absolute_filepath, "wb") as f:
            await f.write(content)

        logger.info(f"Wrote {len(content)} bytes to {path_in_storage}")
        return WriteFileResult(
            path_in_storage=path_in_storage,
            absolute_filepath=absolute_filepath,
        )

    async def write_file(self, path: str, data: bytes | str) -> WriteFileResult:
        return await self._write(get_path_in_storage(path), data)

    async def write_file_publicly(self, path: str, data: bytes | str) -> WriteFileResult:
        return await self._write(get_path_in_storage(path, is_public=True), data)

    async def delete_file(self, path: str) -> None:
        await aiofiles.os.remove(self.get_absolute_path(path))

    async def delete_files(self, paths: list[str]) -> None:
        if not paths:
            return
        await asyncio.gather(*(self.delete_file(path) for path in paths))

    async def rename(self, source: str, destination: str) -> None:
        await aiofiles.os.rename(
            self.get_absolute_path(source),
            self.get_absolute_path(destination),
        )

    async def copy(self, source: str, destination: str) -> None:
        if source == destination:
            return
        await asyncio.to_thread(
            shutil.copyfile,
            self.get_absolute_path(source),
            self.get_absolute_path(destination),
        )

    async def exists(self, path: str) -> bool:
        return await aiofiles.os.path.exists(self.get_absolute_path(path))

    # =========================================================================
    # Directories
    # =========================================================================

    async def mkdir(self, path: str) -> str:
        path = remove_leading_path_sep(path)
        await aiofiles.os.makedirs(self.get_absolute_path(path), exist_ok=True)
        return path

    async def rmdir(self, path: str, force_delete: bool = False) -> None:
        absolute_path = self.get_absolute_path(path)
        if force_delete:
            await asyncio.to_thread(shutil.rmtree, absolute_path)
        else:
            # Raises OSError when the directory is not empty
            await aiofiles.os.rmdir(absolute_path)

    async def is_dir(self, path: str) -> bool:
        """
        Raises:
            FileNotFoundError: If nothing exists at the path
        """
        file_stat = await aiofiles.os.stat(self.get_absolute_path(path))
        return stat.S_ISDIR(file_stat.st_mode)

    async def is_file(self, path: str) -> bool:
        return not await self.is_dir(path)

    async def read_dir(self, path: str) -> list[str]:
        """List the direct children (files and directories) of a directory."""
        return sorted(await aiofiles.os.listdir(self.get_absolute_path(path)))
