"""
Pytest configuration and fixtures.

Provides reusable fixtures:
- storage_directory: Temporary storage root
- fs_config / file_system: Local driver filesystem over the storage root
- make_uploaded_file: Factory staging a file in the temp upload directory
- settings / app / client: FastAPI application wired to the storage root
"""

import os
from collections.abc import Callable, Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from apps.api.config import Settings
from apps.api.main import create_app
from packages.filesystem import FileSystem, FileSystemConfig, LocalDriverConfig, UploadedFile

TEST_SIGNER_SECRET = "test-signer-secret-with-at-least-32-bytes"
TEST_APP_BASE_URL = "http://testserver"
TEST_MAX_UPLOAD_SIZE_BYTES = 1024


# =============================================================================
# Filesystem Fixtures
# =============================================================================


@pytest.fixture
def storage_directory(tmp_path) -> str:
    """Storage root inside pytest's temporary directory."""
    return str(tmp_path / "storage")


@pytest.fixture
def fs_config(storage_directory: str) -> FileSystemConfig:
    return FileSystemConfig(
        storage_directory=storage_directory,
        app_base_url=TEST_APP_BASE_URL,
        max_upload_size_bytes=TEST_MAX_UPLOAD_SIZE_BYTES,
        storage=LocalDriverConfig(url_signer_secret=TEST_SIGNER_SECRET),
    )


@pytest.fixture
def file_system(fs_config: FileSystemConfig) -> FileSystem:
    return FileSystem(lambda: fs_config)


@pytest.fixture
def make_uploaded_file(file_system: FileSystem) -> Callable[..., UploadedFile]:
    """
    Create a file in the current temp upload directory.

    Returns an UploadedFile handle the way parse_form_data would.
    """
    counter = {"value": 0}

    def _make(
        original_filename: str = "photo.PNG",
        content: bytes = b"file content",
        mimetype: str = "image/png",
    ) -> UploadedFile:
        temp_directory = file_system.get_temp_upload_directory()
        os.makedirs(temp_directory, exist_ok=True)
        counter["value"] += 1
        filepath = os.path.join(temp_directory, f"staged-{counter['value']}")
        with open(filepath, "wb") as f:
            f.write(content)
        return UploadedFile(
            original_filename=original_filename,
            mimetype=mimetype,
            size=len(content),
            filepath=filepath,
        )

    return _make


# =============================================================================
# App Fixtures
# =============================================================================


@pytest.fixture
def settings(storage_directory: str) -> Settings:
    return Settings(
        _env_file=None,
        app_base_url=TEST_APP_BASE_URL,
        filesystem_storage_driver="local",
        filesystem_storage_directory=storage_directory,
        max_upload_size_bytes=TEST_MAX_UPLOAD_SIZE_BYTES,
        local_url_signer_secret=TEST_SIGNER_SECRET,
    )


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """
    Create a TestClient for the FastAPI app.

    Used as a context manager so the lifespan creates the storage root.
    """
    with TestClient(app) as test_client:
        yield test_client
