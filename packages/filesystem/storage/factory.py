"""Factory for creating storage backends based on configuration."""

from packages.filesystem.config import FileSystemConfig, LocalDriverConfig, S3DriverConfig
from packages.filesystem.storage.base import FileStorageBackend
from packages.filesystem.storage.local import LocalFileStorage


def get_storage_backend(config: FileSystemConfig) -> FileStorageBackend:
    """
    Create the storage backend for the driver selected in ``config``.

    Called per operation, so a configuration change takes effect on the
    next call.

    Args:
        config: Current filesystem configuration

    Returns:
        Configured FileStorageBackend instance
    """
    storage_config = config.storage
    if isinstance(storage_config, S3DriverConfig):
        from packages.filesystem.storage.s3 import S3FileStorage

        return S3FileStorage(config)
    if isinstance(storage_config, LocalDriverConfig):
        return LocalFileStorage(config)

    raise ValueError(f"Unknown storage driver: {storage_config.driver}")
