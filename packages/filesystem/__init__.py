"""
File ingestion and storage.

Parses multipart payloads with bracket-notation field names, stages
uploads in a per-request temp directory and persists them to local disk
or S3/MinIO behind one API.
"""

from packages.filesystem.config import (
    FileSystemConfig,
    LocalDriverConfig,
    S3DriverConfig,
)
from packages.filesystem.exceptions import (
    AppException,
    DriverMismatchError,
    FileNotPublicError,
    InvalidPayloadFormatError,
    UploadMaxFileSizeError,
    ValidationError,
)
from packages.filesystem.filesystem import FileSystem
from packages.filesystem.types import (
    FieldTree,
    IncomingRequest,
    TransportFile,
    UploadedFile,
    WriteFileResult,
)
from packages.filesystem.uploader import FileUploader

__all__ = [
    "AppException",
    "DriverMismatchError",
    "FieldTree",
    "FileNotPublicError",
    "FileSystem",
    "FileSystemConfig",
    "FileUploader",
    "IncomingRequest",
    "InvalidPayloadFormatError",
    "LocalDriverConfig",
    "S3DriverConfig",
    "TransportFile",
    "UploadMaxFileSizeError",
    "UploadedFile",
    "ValidationError",
]
