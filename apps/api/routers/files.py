"""
File view endpoints.

Endpoints:
- GET /private-file/view/{filepath}?hash=...: Stream a private file through a signed URL (local driver)
- GET /filesystem/s3/{key}: Stream a public S3 object (s3 driver)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from apps.api.dependencies import get_file_system
from packages.filesystem import DriverMismatchError, FileNotPublicError, FileSystem
from packages.filesystem.paths import get_mime_type, is_public_filepath

logger = logging.getLogger(__name__)

router = APIRouter(tags=["files"])

INVALID_LINK_MESSAGE = "Link is no longer valid/ expired."


async def _stream_file(file_system: FileSystem, path: str) -> StreamingResponse:
    if not await file_system.exists(path):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    return StreamingResponse(
        file_system.create_read_stream(path),
        media_type=get_mime_type(path) or "application/octet-stream",
    )


@router.get("/private-file/view/{filepath:path}")
async def view_private_file(
    filepath: str,
    request: Request,
    file_system: FileSystem = Depends(get_file_system),
) -> StreamingResponse:
    """
    Stream a private file if the request URL carries a valid signature.

    Returns:
        400 if the signature is missing, invalid or expired
        404 if the file no longer exists
    """
    if file_system.driver != "local":
        raise DriverMismatchError(expected="local")
    if not filepath:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Filepath is missing.")

    query = request.url.query
    signed_url = f"{file_system.build_url_to_be_signed(filepath)}?{query}" if query else ""
    if not signed_url or not file_system.verify_signed_url(signed_url):
        logger.info(f"Rejected signed URL for {filepath}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_LINK_MESSAGE)

    return await _stream_file(file_system, filepath)


@router.get("/filesystem/s3/{key:path}")
async def view_public_s3_object(
    key: str,
    file_system: FileSystem = Depends(get_file_system),
) -> StreamingResponse:
    """Stream an object from the public partition of the bucket."""
    if file_system.driver != "s3":
        raise DriverMismatchError(expected="s3")
    if not is_public_filepath(key):
        raise FileNotPublicError()

    return await _stream_file(file_system, key)
