"""Tests for storage path helpers."""

import os

import pytest

from packages.filesystem.config import FileSystemConfig
from packages.filesystem.paths import (
    STORAGE_DIRECTORY_ENV_VAR,
    create_storage_directory_if_not_exists,
    get_mime_type,
    get_path_in_storage,
    get_private_storage_directory,
    get_public_storage_directory,
    get_temp_storage_directory,
    is_public_filepath,
    remove_leading_path_sep,
    remove_public_storage_identifier_from,
    resolve_storage_directory,
)


class TestStorageDirectory:
    """Tests for storage root resolution and layout."""

    def test_default_under_app_root(self, monkeypatch):
        """Should default to <app root>/storage."""
        monkeypatch.delenv(STORAGE_DIRECTORY_ENV_VAR, raising=False)
        assert resolve_storage_directory("/srv/app") == os.path.join("/srv/app", "storage")

    def test_environment_override(self, monkeypatch):
        """Should prefer the environment variable over the default."""
        monkeypatch.setenv(STORAGE_DIRECTORY_ENV_VAR, "/data/files")
        assert resolve_storage_directory("/srv/app") == "/data/files"

    def test_explicit_override(self, monkeypatch):
        """Should prefer an explicit override over the environment."""
        monkeypatch.setenv(STORAGE_DIRECTORY_ENV_VAR, "/data/files")
        assert resolve_storage_directory("/srv/app", "/mnt/storage") == "/mnt/storage"

    def test_partitions(self):
        """Should place public, private and temp under the storage root."""
        config = FileSystemConfig(storage_directory="/storage")

        assert get_public_storage_directory(config) == os.path.join("/storage", "public")
        assert get_private_storage_directory(config) == os.path.join("/storage", "private")
        assert get_temp_storage_directory(config) == os.path.join("/storage", "temp")

    @pytest.mark.asyncio
    async def test_create_storage_directory(self, fs_config):
        """Should create both partitions and tolerate existing ones."""
        await create_storage_directory_if_not_exists(fs_config)
        await create_storage_directory_if_not_exists(fs_config)

        assert os.path.isdir(get_public_storage_directory(fs_config))
        assert os.path.isdir(get_private_storage_directory(fs_config))


class TestPathInStorage:
    """Tests for get_path_in_storage."""

    def test_private_by_default(self):
        """Should place paths in the private partition by default."""
        assert get_path_in_storage("avatars/a.png") == "private/avatars/a.png"

    def test_public(self):
        """Should place paths in the public partition when asked."""
        assert get_path_in_storage("/avatars/a.png", is_public=True) == "public/avatars/a.png"

    def test_empty_path(self):
        """Should return the partition itself for an empty path."""
        assert get_path_in_storage("", is_public=True) == "public"

    def test_remove_leading_path_sep(self):
        """Should strip every leading separator."""
        assert remove_leading_path_sep("///a/b") == "a/b"


class TestIsPublicFilepath:
    """Tests for is_public_filepath."""

    @pytest.mark.parametrize(
        "path",
        ["public/a.png", "/public/a.png", "//public/nested/a.png", "public"],
    )
    def test_public_paths(self, path):
        """Should accept paths whose first segment is the public partition."""
        assert is_public_filepath(path) is True

    @pytest.mark.parametrize(
        "path",
        ["private/a.png", "publicity/a.png", "a/public/b.png", ""],
    )
    def test_non_public_paths(self, path):
        """Should reject every other path."""
        assert is_public_filepath(path) is False

    def test_idempotent_under_stripping(self):
        """Should give the same answer after stripping leading separators."""
        for path in ["/public/a.png", "/private/a.png"]:
            assert is_public_filepath(path) == is_public_filepath(remove_leading_path_sep(path))

    def test_remove_public_identifier(self):
        """Should drop the public segment only from public paths."""
        assert remove_public_storage_identifier_from("public/img/a.png") == "img/a.png"
        assert remove_public_storage_identifier_from("/public/a.png") == "a.png"
        assert remove_public_storage_identifier_from("private/a.png") == "private/a.png"


class TestMimeType:
    """Tests for get_mime_type."""

    def test_known_extension(self):
        """Should guess the mimetype from the extension."""
        assert get_mime_type("public/a.png") == "image/png"

    def test_unknown_extension(self):
        """Should return None for unknown extensions."""
        assert get_mime_type("file.unknownext") is None
