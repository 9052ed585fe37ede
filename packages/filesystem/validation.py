"""
Validators for uploaded-file fields.

Each validator accepts a single value or a list (multi-file field) and
raises ValidationError on the first offending value. Empty values pass.
"""

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from packages.filesystem.exceptions import fail_validation_for_field
from packages.filesystem.types import UploadedFile

DEFAULT_IMAGE_MIMETYPES = ("image/gif", "image/jpeg", "image/png")


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else [value]


def is_uploaded_file(value: Any) -> bool:
    return isinstance(value, UploadedFile)


def is_image_file(file: UploadedFile, extra_mimetypes: Iterable[str] = ()) -> bool:
    allowed = set(DEFAULT_IMAGE_MIMETYPES)
    allowed.update(mime.strip().lower() for mime in extra_mimetypes if mime.strip())
    return file.mimetype.lower() in allowed


def validate_file(value: Any, field: str, message: str | None = None) -> None:
    """Ensure the value (or every list element) is an uploaded file."""
    if not value:
        return
    error = message or "Input value(s) must be file(s)."
    for element in _as_list(value):
        if not is_uploaded_file(element):
            fail_validation_for_field(field, error)


def validate_image(
    value: Any,
    field: str,
    message: str | None = None,
    extra_mimetypes: Iterable[str] = (),
) -> None:
    """
    Ensure the value (or every list element) is a GIF, JPEG or PNG upload.

    Args:
        value: Field value from the parsed form
        field: Field name reported in the error
        message: Custom error message
        extra_mimetypes: Additional accepted image mimetypes
    """
    if not value:
        return
    error = message or "Invalid image file(s)."
    extra_mimetypes = tuple(extra_mimetypes)
    for element in _as_list(value):
        if not is_uploaded_file(element) or not is_image_file(element, extra_mimetypes):
            fail_validation_for_field(field, error)


def validate_file_extension(
    value: Any,
    field: str,
    allowed_extensions: Iterable[str],
    message: str | None = None,
) -> None:
    """Ensure every upload has one of ``allowed_extensions`` (dot included)."""
    allowed = {extension.lower() for extension in allowed_extensions}
    if not value or not allowed:
        return
    error = message or "File does not have the valid extension."
    for element in _as_list(value):
        if (
            not is_uploaded_file(element)
            or Path(element.original_filename).suffix.lower() not in allowed
        ):
            fail_validation_for_field(field, error)


def parse_multipart_boolean(value: str | int | float | bool) -> bool:
    """Interpret a multipart form value as a boolean."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() == "true"
    return value > 0
