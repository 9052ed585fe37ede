"""Tests for the FileSystem facade."""

import os

import pytest

from packages.filesystem import (
    DriverMismatchError,
    FileSystem,
    FileSystemConfig,
    IncomingRequest,
    LocalDriverConfig,
    S3DriverConfig,
    TransportFile,
    UploadedFile,
    ValidationError,
)
from packages.filesystem.storage import LocalFileStorage, S3FileStorage


class TestBackendResolution:
    """Tests for per-call backend resolution."""

    def test_follows_configuration_changes(self, fs_config):
        """Should pick up a driver change on the next call."""
        current = {"config": fs_config}
        file_system = FileSystem(lambda: current["config"])

        assert isinstance(file_system.storage, LocalFileStorage)

        current["config"] = fs_config.model_copy(update={"storage": S3DriverConfig(bucket="b")})

        assert isinstance(file_system.storage, S3FileStorage)
        assert file_system.driver == "s3"

    def test_verify_requires_local_driver(self):
        """Should raise when verifying signed URLs on another driver."""
        config = FileSystemConfig(storage_directory="/tmp/s", storage=S3DriverConfig(bucket="b"))
        file_system = FileSystem(lambda: config)

        with pytest.raises(DriverMismatchError):
            file_system.verify_signed_url("http://testserver/private-file/view/a?hash=x")

    def test_config_is_read_only(self, fs_config):
        """Should not allow mutating the configuration snapshot."""
        with pytest.raises(ValueError):
            fs_config.max_upload_size_bytes = 1


class TestFileSystemFlow:
    """Tests for the parse, store and read flow."""

    @pytest.mark.asyncio
    async def test_upload_store_and_sign(self, file_system, fs_config):
        """Should parse a payload, store its file and sign a URL to it."""
        temp_directory = file_system.get_temp_upload_directory()
        os.makedirs(temp_directory)
        staged_path = os.path.join(temp_directory, "staged")
        with open(staged_path, "wb") as f:
            f.write(b"avatar bytes")

        fields = file_system.parse_form_data(
            IncomingRequest(
                files={
                    "user[avatar]": TransportFile(
                        name="Me.PNG",
                        mimetype="image/png",
                        size=12,
                        temp_file_path=staged_path,
                    )
                },
                body={"user[name]": "Ada"},
            )
        )
        path = await file_system.store_file(fields["user"]["avatar"], directory="avatars", filename="ada")

        assert path == "private/avatars/ada.png"
        assert await file_system.read_file(path) == b"avatar bytes"
        signed_url = await file_system.get_signed_url(path)
        assert file_system.verify_signed_url(signed_url) is True

        await file_system.clear_temp_upload_directory()
        assert not os.path.exists(temp_directory)

    @pytest.mark.asyncio
    async def test_write_and_public_url(self, file_system):
        """Should write publicly and expose the public URL."""
        result = await file_system.write_file_publicly("docs/readme.txt", "hello")

        assert await file_system.exists(result.path_in_storage)
        assert file_system.get_public_url(result.path_in_storage) == "http://testserver/docs/readme.txt"

    @pytest.mark.asyncio
    async def test_directory_operations(self, file_system):
        """Should delegate directory operations to the backend."""
        path = await file_system.mkdir_private("reports")
        await file_system.write_file("reports/a.txt", "a")

        assert await file_system.is_dir(path) is True
        assert await file_system.read_dir(path) == ["a.txt"]

        await file_system.rmdir(path, force_delete=True)
        assert not await file_system.exists(path)

    @pytest.mark.asyncio
    async def test_create_storage_directory(self, file_system, fs_config):
        """Should create the storage partitions."""
        await file_system.create_storage_directory_if_not_exists()

        assert os.path.isdir(os.path.join(fs_config.storage_directory, "public"))
        assert os.path.isdir(os.path.join(fs_config.storage_directory, "private"))


class TestImageValidation:
    """Tests for FileSystem.validate_image."""

    def test_configured_mimetypes_accepted(self, fs_config):
        """Should accept image mimetypes added through configuration."""
        webp = UploadedFile(
            original_filename="a.webp", mimetype="image/webp", size=1, filepath="/tmp/a"
        )
        configured = FileSystem(
            lambda: fs_config.model_copy(update={"image_mimetypes": ("image/webp",)})
        )

        configured.validate_image(webp, "banner")

        with pytest.raises(ValidationError):
            FileSystem(lambda: fs_config).validate_image(webp, "banner")


def test_local_driver_is_default():
    """Should default to the local driver."""
    config = FileSystemConfig(storage_directory="/tmp/s")

    assert isinstance(config.storage, LocalDriverConfig)
    assert config.driver == "local"
