"""Data types shared by the uploader, the storage backends and the facade."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class UploadedFile:
    """
    Handle to a file received with the current request.

    ``filepath`` points into the request's temp upload directory and stops
    being valid once that directory is cleared.
    """

    original_filename: str
    mimetype: str
    size: int
    filepath: str
    hash: str | None = None


@dataclass
class TransportFile:
    """A file as staged by the HTTP layer, before normalisation."""

    name: str
    mimetype: str
    size: int
    temp_file_path: str
    md5: str | None = None


@dataclass
class IncomingRequest:
    """
    Already-parsed request payload handed over by the HTTP layer.

    ``files`` maps field names to a TransportFile or a list of them.
    ``body`` maps field names to ordinary form values. Either container may
    be missing; a list in place of a mapping is rejected by the uploader.
    """

    files: Any = None
    body: Any = None


@dataclass
class WriteFileResult:
    """Location of a written file plus backend-specific metadata."""

    path_in_storage: str
    absolute_filepath: str
    metadata: dict[str, Any] = field(default_factory=dict)


# Values are strings, UploadedFile handles, nested trees or lists of those.
FieldTree = dict[str, Any]
