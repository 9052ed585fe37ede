"""S3/MinIO file storage backend."""

import errno
import logging
from collections.abc import AsyncIterator
from urllib.parse import quote

import aioboto3
from botocore.exceptions import ClientError

from packages.filesystem.config import (
    DEFAULT_SIGNED_URL_TTL_SECONDS,
    FileSystemConfig,
    S3DriverConfig,
)
from packages.filesystem.paths import get_mime_type, get_path_in_storage, remove_leading_path_sep
from packages.filesystem.storage.base import DEFAULT_CHUNK_SIZE, FileStorageBackend
from packages.filesystem.types import WriteFileResult

logger = logging.getLogger(__name__)

VIEW_PUBLIC_S3_OBJECT_ROUTE = "/filesystem/s3/{key}"

# S3 DeleteObjects accepts at most this many keys per request
DELETE_OBJECTS_BATCH_SIZE = 1000

NOT_FOUND_ERROR_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(error: ClientError) -> str | None:
    return error.response.get("Error", {}).get("Code")


def _is_not_found(error: ClientError) -> bool:
    return _error_code(error) in NOT_FOUND_ERROR_CODES


def _directory_prefix(path: str) -> str:
    path = remove_leading_path_sep(path).rstrip("/")
    return f"{path}/" if path else ""


class S3FileStorage(FileStorageBackend):
    """
    S3/MinIO storage backend.

    Supports both AWS S3 and MinIO (via endpoint_url configuration).
    Directories are emulated with zero-byte objects whose key ends in ``/``;
    a prefix holding objects also counts as a directory.
    """

    def __init__(self, config: FileSystemConfig):
        """
        Initialize S3 file storage.

        Args:
            config: Filesystem configuration whose driver is ``s3``
        """
        if not isinstance(config.storage, S3DriverConfig):
            raise ValueError("S3FileStorage requires an s3 driver configuration")

        self.config = config
        self.s3_config: S3DriverConfig = config.storage
        self.bucket = self.s3_config.bucket
        self._session = aioboto3.Session()

    @property
    def backend_name(self) -> str:
        return "s3"

    def _get_client_kwargs(self) -> dict:
        """Build kwargs for S3 client."""
        kwargs = {
            "region_name": self.s3_config.region,
        }
        if self.s3_config.endpoint_url:
            kwargs["endpoint_url"] = self.s3_config.endpoint_url
        if self.s3_config.access_key_id and self.s3_config.secret_access_key:
            kwargs["aws_access_key_id"] = self.s3_config.access_key_id
            kwargs["aws_secret_access_key"] = self.s3_config.secret_access_key
        return kwargs

    def _client(self):
        return self._session.client("s3", **self._get_client_kwargs())

    def get_absolute_path(self, path: str) -> str:
        return path

    # =========================================================================
    # URLs
    # =========================================================================

    def get_public_url(self, key: str) -> str:
        """
        Return CloudFront domain + key when CloudFront is configured,
        otherwise the app's public object view route.
        """
        key = remove_leading_path_sep(key)
        if self.s3_config.cloudfront_domain:
            return f"{self.s3_config.cloudfront_domain.rstrip('/')}/{key}"

        route = VIEW_PUBLIC_S3_OBJECT_ROUTE.format(key=quote(key, safe=""))
        return f"{self.config.app_base_url.rstrip('/')}{route}"

    async def get_signed_url(self, key: str, ttl_seconds: int | None = None) -> str:
        """Generate a presigned GET URL for direct object access."""
        expires_in = ttl_seconds or self.s3_config.signed_url_ttl_seconds or DEFAULT_SIGNED_URL_TTL_SECONDS
        async with self._client() as s3:
            return await s3.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )

    # =========================================================================
    # Objects
    # =========================================================================

    async def read_file(self, key: str) -> bytes:
        """
        Raises:
            FileNotFoundError: If the object doesn't exist
        """
        async with self._client() as s3:
            try:
                response = await s3.get_object(Bucket=self.bucket, Key=key)
            except ClientError as e:
                if _is_not_found(e):
                    raise FileNotFoundError(f"File not found: {key}") from e
                raise
            return await response["Body"].read()

    async def create_read_stream(
        self, key: str, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> AsyncIterator[bytes]:
        async with self._client() as s3:
            try:
                response = await s3.get_object(Bucket=self.bucket, Key=key)
            except ClientError as e:
                if _is_not_found(e):
                    raise FileNotFoundError(f"File not found: {key}") from e
                raise

            async with response["Body"] as body:
                async for chunk in body.iter_chunks(chunk_size):
                    yield chunk

    async def _put(self, key: str, data: bytes | str) -> WriteFileResult:
        put_params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data.encode("utf-8") if isinstance(data, str) else data,
        }
        content_type = get_mime_type(key)
        if content_type:
            put_params["ContentType"] = content_type

        async with self._client() as s3:
            try:
                response = await s3.put_object(**put_params)
            except ClientError:
                logger.exception(f"Error writing s3://{self.bucket}/{key}")
                raise

        logger.info(f"Wrote s3://{self.bucket}/{key}")
        return WriteFileResult(
            path_in_storage=key,
            absolute_filepath=key,
            metadata={k: v for k, v in response.items() if k != "ResponseMetadata"},
        )

    async def write_file(self, key: str, data: bytes | str) -> WriteFileResult:
        return await self._put(get_path_in_storage(key), data)

    async def write_file_publicly(self, key: str, data: bytes | str) -> WriteFileResult:
        return await self._put(get_path_in_storage(key, is_public=True), data)

    async def delete_file(self, key: str) -> None:
        async with self._client() as s3:
            await s3.delete_object(Bucket=self.bucket, Key=key)

    async def delete_files(self, keys: list[str]) -> None:
        if not keys:
            return
        async with self._client() as s3:
            for start in range(0, len(keys), DELETE_OBJECTS_BATCH_SIZE):
                batch = keys[start : start + DELETE_OBJECTS_BATCH_SIZE]
                response = await s3.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": key} for key in batch]},
                )
                self._raise_for_delete_errors(response)

    async def copy(self, source: str, destination: str) -> None:
        if source == destination:
            return
        async with self._client() as s3:
            await s3.copy_object(
                Bucket=self.bucket,
                Key=destination,
                CopySource={"Bucket": self.bucket, "Key": source},
            )

    async def rename(self, source: str, destination: str) -> None:
        """Copy then delete; only objects can be renamed, not prefixes."""
        if source == destination:
            return
        await self.copy(source, destination)
        await self.delete_file(source)

    async def _head(self, key: str) -> dict:
        async with self._client() as s3:
            return await s3.head_object(Bucket=self.bucket, Key=key)

    async def _object_exists(self, key: str) -> bool:
        try:
            await self._head(key)
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise
        return True

    async def _list_keys(self, prefix: str, max_keys: int) -> list[str]:
        async with self._client() as s3:
            listing = await s3.list_objects_v2(Bucket=self.bucket, Prefix=prefix, MaxKeys=max_keys)
        return [obj["Key"] for obj in listing.get("Contents", []) if obj.get("Key")]

    async def _is_directory(self, path: str) -> bool:
        """True when a marker or any object lives under ``path/``."""
        return bool(await self._list_keys(_directory_prefix(path), 1))

    async def exists(self, key: str) -> bool:
        """Works for objects, directory markers and prefixes holding objects."""
        return await self._object_exists(key) or await self._is_directory(key)

    # =========================================================================
    # Directories
    # =========================================================================

    async def read_dir(self, path: str) -> list[str]:
        """List the names of the objects and sub-prefixes directly under ``path/``."""
        prefix = _directory_prefix(path)
        params = {"Bucket": self.bucket, "Delimiter": "/"}
        if prefix:
            params["Prefix"] = prefix

        names: list[str] = []
        async with self._client() as s3:
            paginator = s3.get_paginator("list_objects_v2")
            async for page in paginator.paginate(**params):
                for obj in page.get("Contents", []):
                    name = obj.get("Key", "")[len(prefix) :]
                    if name:
                        names.append(name)
                for common_prefix in page.get("CommonPrefixes", []):
                    name = common_prefix.get("Prefix", "")[len(prefix) :].rstrip("/")
                    if name:
                        names.append(name)
        return sorted(names)

    async def mkdir(self, path: str) -> str:
        path = remove_leading_path_sep(path).rstrip("/")
        await self._put_directory_marker(f"{path}/")
        return path

    async def _put_directory_marker(self, key: str) -> None:
        async with self._client() as s3:
            await s3.put_object(Bucket=self.bucket, Key=key, Body=b"")

    async def rmdir(self, path: str, force_delete: bool = False) -> None:
        """
        Raises:
            OSError: If objects besides the marker exist and force_delete is False
        """
        prefix = _directory_prefix(path)
        if force_delete:
            await self._rmdir_recursively(prefix)
            return

        # The marker sorts first, so two keys are enough to see other content
        if any(key != prefix for key in await self._list_keys(prefix, 2)):
            raise OSError(errno.ENOTEMPTY, "Directory not empty", path)
        await self.delete_file(prefix)

    async def _rmdir_recursively(self, prefix: str) -> None:
        async with self._client() as s3:
            while True:
                listing = await s3.list_objects_v2(Bucket=self.bucket, Prefix=prefix)
                contents = listing.get("Contents", [])
                if not contents:
                    return

                response = await s3.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": obj["Key"]} for obj in contents]},
                )
                self._raise_for_delete_errors(response)
                if not listing.get("IsTruncated"):
                    return

    def _raise_for_delete_errors(self, response: dict) -> None:
        errors = response.get("Errors", [])
        if not errors:
            return
        failed = [error.get("Key", "") for error in errors]
        logger.error(f"Failed to delete {len(failed)} object(s) from s3://{self.bucket}: {failed}")
        raise OSError(f"Failed to delete objects: {', '.join(failed)}")

    async def is_file(self, key: str) -> bool:
        """
        Raises:
            FileNotFoundError: If neither the object nor a directory exists
        """
        if not key.endswith("/") and await self._object_exists(key):
            return True
        if await self._is_directory(key):
            return False
        raise FileNotFoundError(f"File not found: {key}")

    async def is_dir(self, path: str) -> bool:
        """
        Raises:
            FileNotFoundError: If neither a directory nor an object exists
        """
        if await self._is_directory(path):
            return True
        if await self._object_exists(path.rstrip("/")):
            return False
        raise FileNotFoundError(f"Directory not found: {path}")
