"""
Stage incoming request payloads for the uploader.

Uploaded files are streamed into the request's temp upload directory while
their md5 and size are computed. Repeated form keys become lists.
"""

import hashlib
import logging
import os
from typing import Any

import aiofiles
import aiofiles.os
from fastapi import Request
from starlette.datastructures import UploadFile

from packages.filesystem import FileSystem, IncomingRequest, TransportFile
from packages.filesystem.uploader import generate_uuid

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_SIZE = 1024 * 1024

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _append(container: dict[str, Any], key: str, value: Any) -> None:
    if key not in container:
        container[key] = value
    elif isinstance(container[key], list):
        container[key].append(value)
    else:
        container[key] = [container[key], value]


async def stage_upload(upload: UploadFile, temp_upload_directory: str) -> TransportFile:
    """Copy an upload into the temp directory under a random name."""
    await aiofiles.os.makedirs(temp_upload_directory, exist_ok=True)
    temp_file_path = os.path.join(temp_upload_directory, generate_uuid())

    digest = hashlib.md5()
    size = 0
    async with aiofiles.open(temp_file_path, "wb") as f:
        while True:
            chunk = await upload.read(UPLOAD_CHUNK_SIZE)
            if not chunk:
                break
            digest.update(chunk)
            size += len(chunk)
            await f.write(chunk)

    return TransportFile(
        name=upload.filename or "",
        mimetype=upload.content_type or "application/octet-stream",
        size=size,
        temp_file_path=temp_file_path,
        md5=digest.hexdigest(),
    )


async def stage_request_payload(request: Request, file_system: FileSystem) -> IncomingRequest:
    """
    Turn the raw request body into an IncomingRequest.

    JSON bodies are passed through untouched; form bodies are split into
    staged files and ordinary values.
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        raw_body = await request.body()
        return IncomingRequest(body=await request.json() if raw_body else None)

    if not content_type.startswith(FORM_CONTENT_TYPES):
        return IncomingRequest()

    files: dict[str, Any] = {}
    body: dict[str, Any] = {}
    async with request.form() as form:
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                # Browsers send an empty part for a file input left blank
                if not value.filename:
                    continue
                staged = await stage_upload(value, file_system.get_temp_upload_directory())
                _append(files, key, staged)
            else:
                _append(body, key, value)

    if files:
        logger.debug(f"Staged upload fields: {sorted(files)}")
    return IncomingRequest(files=files, body=body)
