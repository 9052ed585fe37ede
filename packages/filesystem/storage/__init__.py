"""
File storage backends.

Provides abstract interface and implementations for:
- Local disk storage
- S3/MinIO storage
"""

from packages.filesystem.storage.base import FileStorageBackend
from packages.filesystem.storage.factory import get_storage_backend
from packages.filesystem.storage.local import LocalFileStorage
from packages.filesystem.storage.s3 import S3FileStorage

__all__ = [
    "FileStorageBackend",
    "LocalFileStorage",
    "S3FileStorage",
    "get_storage_backend",
]
