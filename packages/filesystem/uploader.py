"""
Multipart payload ingestion and temp upload directory lifecycle.

Each request stages its files under ``<storage root>/temp/<session id>``.
The session id lives in a context variable so that concurrent requests
served by the same process never share a temp directory.
"""

import asyncio
import logging
import os
import posixpath
import shutil
import uuid
from collections.abc import Callable, Iterable, Mapping
from contextvars import ContextVar, Token
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from packages.filesystem.config import FileSystemConfig
from packages.filesystem.exceptions import InvalidPayloadFormatError, UploadMaxFileSizeError
from packages.filesystem.nested_fields import deep_merge, is_nested_field, parse_nested_field
from packages.filesystem.paths import get_path_in_storage, get_temp_storage_directory, remove_leading_path_sep
from packages.filesystem.storage import get_storage_backend
from packages.filesystem.types import FieldTree, IncomingRequest, TransportFile, UploadedFile

logger = logging.getLogger(__name__)


class _TempUploadSession:
    """Mutable holder for the lazily generated temp directory id."""

    def __init__(self) -> None:
        self.id: str | None = None


_temp_upload_session: ContextVar[_TempUploadSession | None] = ContextVar(
    "temp_upload_session", default=None
)


def begin_temp_upload_session() -> Token:
    """Start a fresh temp upload session for the current context."""
    return _temp_upload_session.set(_TempUploadSession())


def end_temp_upload_session(token: Token) -> None:
    _temp_upload_session.reset(token)


def generate_uuid() -> str:
    return str(uuid.uuid4())


class FileUploader:
    """
    Turns an incoming payload into a field tree and persists uploaded files.

    Configuration is read through ``config_provider`` on every call.
    """

    def __init__(self, config_provider: Callable[[], FileSystemConfig]):
        self._config_provider = config_provider
        # Used outside of a request, e.g. from scripts and tests
        self._process_session = _TempUploadSession()

    @property
    def config(self) -> FileSystemConfig:
        return self._config_provider()

    def _session(self) -> _TempUploadSession:
        return _temp_upload_session.get() or self._process_session

    # =========================================================================
    # Temp upload directory
    # =========================================================================

    def get_temp_upload_dir_id(self) -> str:
        session = self._session()
        if session.id is None:
            session.id = generate_uuid()
        return session.id

    def reset_temp_upload_dir_id(self) -> None:
        self._session().id = None

    def get_temp_upload_directory(self) -> str:
        """Return ``<storage root>/temp/<session id>``, generating the id on first use."""
        return os.path.join(get_temp_storage_directory(self.config), self.get_temp_upload_dir_id())

    async def clear_temp_upload_directory(self) -> None:
        """
        Delete the current session's temp directory and forget its id.

        Never raises. Only the id that was in use when the call started is
        cleared, so a newer id generated meanwhile survives.
        """
        session = self._session()
        temp_dir_id = session.id
        if temp_dir_id is None:
            return

        directory = os.path.join(get_temp_storage_directory(self.config), temp_dir_id)
        try:
            await asyncio.to_thread(shutil.rmtree, directory)
        except Exception as e:
            logger.debug(f"Ignored failure while clearing temp upload directory {directory}: {e}")
        finally:
            if session.id == temp_dir_id:
                session.id = None

    # =========================================================================
    # Payload parsing
    # =========================================================================

    @staticmethod
    def make_uploaded_file_compatible(file: TransportFile) -> UploadedFile:
        return UploadedFile(
            original_filename=file.name,
            mimetype=file.mimetype,
            size=file.size,
            filepath=file.temp_file_path,
            hash=file.md5,
        )

    @staticmethod
    def _iter_transport_files(files: Mapping[str, Any]) -> Iterable[TransportFile]:
        for value in files.values():
            if isinstance(value, (list, tuple)):
                yield from value
            elif value is not None:
                yield value

    def get_total_uploaded_file_size(self, files: Mapping[str, Any]) -> int:
        return sum(file.size for file in self._iter_transport_files(files))

    def is_payload_too_large(self, files: Mapping[str, Any]) -> bool:
        return self.get_total_uploaded_file_size(files) > self.config.max_upload_size_bytes

    def _set_field(self, fields: FieldTree, field_name: str, value: Any) -> None:
        if is_nested_field(field_name):
            fragment = parse_nested_field(
                field_name, value, max_sequence_index=self.config.max_field_index
            )
            deep_merge(fields, fragment)
        else:
            fields[field_name] = value

    def parse_form_data(self, request: IncomingRequest) -> FieldTree:
        """
        Build the field tree of a request.

        File fields are processed before ordinary fields; bracket-notation
        names are decoded and merged into a single tree.

        Raises:
            InvalidPayloadFormatError: A container is not a mapping or a
                field name is malformed
            UploadMaxFileSizeError: Total file size exceeds the limit
        """
        fields: FieldTree = {}

        if request.files is not None:
            if not isinstance(request.files, Mapping):
                raise InvalidPayloadFormatError()
            if self.is_payload_too_large(request.files):
                raise UploadMaxFileSizeError(limit=self.config.max_upload_size_bytes)

            for field_name, value in request.files.items():
                if isinstance(value, (list, tuple)):
                    uploaded = [self.make_uploaded_file_compatible(file) for file in value]
                else:
                    uploaded = self.make_uploaded_file_compatible(value)
                self._set_field(fields, field_name, uploaded)

        if request.body is not None:
            if not isinstance(request.body, Mapping):
                raise InvalidPayloadFormatError()
            for field_name, value in request.body.items():
                self._set_field(fields, field_name, value)

        return fields

    # =========================================================================
    # Persistence
    # =========================================================================

    @staticmethod
    def get_target_filename(uploaded_file: UploadedFile, filename: str | None = None) -> str:
        extension = Path(uploaded_file.original_filename).suffix
        if filename:
            return f"{filename}{extension}".lower()
        return f"{generate_uuid()}{extension}".lower()

    @staticmethod
    def _normalize_directory(directory: str | None) -> str:
        if not directory:
            return ""
        return remove_leading_path_sep(directory).rstrip("/").lower()

    async def _store(
        self,
        uploaded_file: UploadedFile,
        directory: str | None,
        filename: str | None,
        is_public: bool,
    ) -> str:
        config = self.config
        storage = get_storage_backend(config)
        client_filepath = posixpath.join(
            self._normalize_directory(directory),
            self.get_target_filename(uploaded_file, filename),
        )

        if storage.backend_name == "local":
            path_in_storage = get_path_in_storage(client_filepath, is_public=is_public)
            absolute_filepath = storage.get_absolute_path(path_in_storage)
            await aiofiles.os.makedirs(os.path.dirname(absolute_filepath), exist_ok=True)
            await aiofiles.os.rename(uploaded_file.filepath, absolute_filepath)
        else:
            async with aiofiles.open(uploaded_file.filepath, "rb") as f:
                content = await f.read()
            if is_public:
                result = await storage.write_file_publicly(client_filepath, content)
            else:
                result = await storage.write_file(client_filepath, content)
            await aiofiles.os.remove(uploaded_file.filepath)
            path_in_storage = result.path_in_storage

        logger.info(
            f"Stored upload {uploaded_file.original_filename!r} as {path_in_storage} "
            f"({storage.backend_name})"
        )
        return path_in_storage

    async def store_file(
        self,
        uploaded_file: UploadedFile,
        directory: str | None = None,
        filename: str | None = None,
    ) -> str:
        """
        Move an uploaded file from the temp directory into private storage.

        Args:
            uploaded_file: Handle returned by parse_form_data
            directory: Optional subdirectory, lower-cased
            filename: Optional name without extension; a random one is used otherwise

        Returns:
            Path (local) or key (S3) of the stored file
        """
        return await self._store(uploaded_file, directory, filename, is_public=False)

    async def store_file_publicly(
        self,
        uploaded_file: UploadedFile,
        directory: str | None = None,
        filename: str | None = None,
    ) -> str:
        """Same as store_file, but into the public partition."""
        return await self._store(uploaded_file, directory, filename, is_public=True)

    async def store_files(
        self,
        uploaded_files: list[UploadedFile],
        directory: str | None = None,
    ) -> list[str]:
        """Store files one after another; paths are returned in input order."""
        paths = []
        for uploaded_file in uploaded_files:
            paths.append(await self.store_file(uploaded_file, directory=directory))
        return paths
