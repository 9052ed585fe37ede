"""
Storage directory layout and path helpers.

Layout of the storage root:
    <storage root>/public/...        anonymously retrievable files
    <storage root>/private/...       everything else (default)
    <storage root>/temp/<session>/   per-request upload staging area

Object-storage keys use the same ``public/`` and ``private/`` prefixes.
"""

import mimetypes
import os
import posixpath
from pathlib import Path

import aiofiles.os

from packages.filesystem.config import FileSystemConfig

PUBLIC_STORAGE_DIRNAME = "public"
PRIVATE_STORAGE_DIRNAME = "private"
TEMP_DIRNAME = "temp"

STORAGE_DIRECTORY_ENV_VAR = "FILESYSTEM_STORAGE_DIRECTORY"


def get_default_storage_directory(app_root_directory: str | Path) -> str:
    return str(Path(app_root_directory) / "storage")


def resolve_storage_directory(app_root_directory: str | Path, override: str | None = None) -> str:
    """
    Resolve the storage root.

    Order: explicit override, ``FILESYSTEM_STORAGE_DIRECTORY`` environment
    variable, then ``<app root>/storage``.
    """
    if override:
        return override
    env_storage_directory = os.getenv(STORAGE_DIRECTORY_ENV_VAR, "")
    if env_storage_directory:
        return env_storage_directory
    return get_default_storage_directory(app_root_directory)


def get_public_storage_directory(config: FileSystemConfig) -> str:
    return os.path.join(config.storage_directory, PUBLIC_STORAGE_DIRNAME)


def get_private_storage_directory(config: FileSystemConfig) -> str:
    return os.path.join(config.storage_directory, PRIVATE_STORAGE_DIRNAME)


def get_temp_storage_directory(config: FileSystemConfig) -> str:
    return os.path.join(config.storage_directory, TEMP_DIRNAME)


async def create_storage_directory_if_not_exists(config: FileSystemConfig) -> None:
    """Create the storage root with its public and private partitions."""
    for directory in (
        get_public_storage_directory(config),
        get_private_storage_directory(config),
    ):
        await aiofiles.os.makedirs(directory, exist_ok=True)


def remove_leading_path_sep(filepath: str) -> str:
    """Strip every leading ``/`` (and OS separator) from a path."""
    return filepath.lstrip(os.sep + "/")


def get_path_in_storage(client_filepath: str, is_public: bool = False) -> str:
    """
    Place a caller-supplied path inside the public or private partition.

    Returns:
        Storage path such as ``private/avatars/a.png``
    """
    client_filepath = remove_leading_path_sep(client_filepath)
    dirname = PUBLIC_STORAGE_DIRNAME if is_public else PRIVATE_STORAGE_DIRNAME
    if not client_filepath:
        return dirname
    return posixpath.join(dirname, client_filepath)


def is_public_filepath(storage_filepath: str) -> bool:
    """Return True iff the path lies in the public partition."""
    storage_filepath = remove_leading_path_sep(storage_filepath)
    first_segment = storage_filepath.replace(os.sep, "/").split("/", 1)[0]
    return first_segment == PUBLIC_STORAGE_DIRNAME


def remove_public_storage_identifier_from(filepath_or_key: str) -> str:
    """Drop the leading public partition segment, if any."""
    if not is_public_filepath(filepath_or_key):
        return filepath_or_key

    stripped = remove_leading_path_sep(filepath_or_key)
    return remove_leading_path_sep(stripped[len(PUBLIC_STORAGE_DIRNAME):])


def get_mime_type(filepath_or_name: str) -> str | None:
    mime_type, _ = mimetypes.guess_type(filepath_or_name)
    return mime_type
