"""
S3 compatible object storage implementation.

boto3 is synchronous, so every client call is dispatched to the default
executor. Objects are stored as-is; at-rest encryption only applies to
local storage.
"""

import asyncio
import functools
import mimetypes
import posixpath
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from ...core.config import S3StorageSettings
from ...core.exceptions import FileDoesNotExistError, StorageError
from ...core.logging import get_logger
from ...domain.value_objects import CopyOrMoveInput, FileStats, UploadOptions, UploadResult
from .base import DEFAULT_MIME_TYPE, DEFAULT_PER_PAGE, StorageBackend, StoredFile
from .streams import ByteSource, FileStream, iter_binary_file, iter_bytes

logger = get_logger(__name__)

NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


@dataclass
class S3File(StoredFile):
    """Stored object together with its body stream."""
    version_id: Optional[str] = None


def create_s3_client(settings: S3StorageSettings):
    """Build a boto3 S3 client from settings, leaving unset values to boto3 defaults."""
    secret = settings.aws_secret_access_key
    kwargs = {
        "region_name": settings.region_name,
        "endpoint_url": settings.endpoint_url,
        "aws_access_key_id": settings.aws_access_key_id,
        "aws_secret_access_key": secret.get_secret_value() if secret else None,
    }
    return boto3.client("s3", **{k: v for k, v in kwargs.items() if v is not None})


class S3FileStorage(StorageBackend):
    """S3 storage backend."""

    def __init__(self, settings: S3StorageSettings, client: Any = None):
        self.settings = settings
        self.client = client or create_s3_client(settings)
        logger.info(f"Initialized S3 storage for bucket: {settings.bucket}")

    @property
    def bucket(self) -> str:
        return self.settings.bucket

    @property
    def options(self) -> S3StorageSettings:
        return self.settings

    async def _call(self, method, key: Optional[str] = None, **kwargs):
        """Run a blocking client method in the executor, mapping client errors."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(method, **kwargs))
        except ClientError as e:
            raise self._map_client_error(e, key) from e

    def _map_client_error(self, error: ClientError, key: Optional[str]) -> StorageError:
        code = str(error.response.get("Error", {}).get("Code", ""))
        if code in NOT_FOUND_CODES:
            return FileDoesNotExistError(f"{self.bucket}/{key}")
        return StorageError(
            f"S3 request failed: {error}",
            error_code=code or None,
            details={"bucket": self.bucket, "key": key},
        )

    async def upload(
        self,
        source: ByteSource,
        options: Optional[UploadOptions] = None
    ) -> UploadResult:
        """
        Stream ``source`` into the bucket.

        Bodies smaller than one part go through ``put_object``; anything larger
        uses a multipart upload that is aborted if the stream fails.
        """
        options = options or UploadOptions()
        resolved = await self.resolve_source(source, options, self.settings.chunk_size)
        key = self.generate_key(resolved, options)

        try:
            response = await self._upload_stream(resolved.stream, key, resolved.mime_type)
        finally:
            await resolved.aclose()

        logger.debug(f"Uploaded object: s3://{self.bucket}/{key}")
        return UploadResult(
            bucket=self.bucket,
            key=key,
            etag=response.get("ETag"),
            version_id=response.get("VersionId"),
        )

    async def _upload_stream(self, stream: AsyncIterator[bytes], key: str, content_type: str) -> Dict[str, Any]:
        part_size = self.settings.part_size
        buffer = bytearray()
        upload_id: Optional[str] = None
        parts: List[Dict[str, Any]] = []

        try:
            async for chunk in stream:
                buffer.extend(chunk)
                while len(buffer) >= part_size:
                    if upload_id is None:
                        upload_id = await self._create_multipart_upload(key, content_type)
                    body = bytes(buffer[:part_size])
                    del buffer[:part_size]
                    parts.append(await self._upload_part(key, upload_id, len(parts) + 1, body))

            if upload_id is None:
                return await self._call(
                    self.client.put_object,
                    key,
                    Bucket=self.bucket,
                    Key=key,
                    Body=bytes(buffer),
                    ContentType=content_type,
                )

            if buffer:
                parts.append(await self._upload_part(key, upload_id, len(parts) + 1, bytes(buffer)))
            return await self._call(
                self.client.complete_multipart_upload,
                key,
                Bucket=self.bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except BaseException:
            if upload_id is not None:
                await self._abort_multipart_upload(key, upload_id)
            raise

    async def _create_multipart_upload(self, key: str, content_type: str) -> str:
        response = await self._call(
            self.client.create_multipart_upload,
            key,
            Bucket=self.bucket,
            Key=key,
            ContentType=content_type,
        )
        return response["UploadId"]

    async def _upload_part(self, key: str, upload_id: str, part_number: int, body: bytes) -> Dict[str, Any]:
        response = await self._call(
            self.client.upload_part,
            key,
            Bucket=self.bucket,
            Key=key,
            UploadId=upload_id,
            PartNumber=part_number,
            Body=body,
        )
        return {"ETag": response["ETag"], "PartNumber": part_number}

    async def _abort_multipart_upload(self, key: str, upload_id: str) -> None:
        try:
            await self._call(
                self.client.abort_multipart_upload,
                key,
                Bucket=self.bucket,
                Key=key,
                UploadId=upload_id,
            )
        except StorageError as e:
            logger.warning(f"Failed to abort multipart upload {upload_id} for {key}: {e}")

    async def get_file(self, key: str, start: Optional[int] = None, end: Optional[int] = None) -> S3File:
        """Open an object for reading, optionally limited to ``[start, end)``."""
        kwargs: Dict[str, Any] = {"Bucket": self.bucket, "Key": key}
        if start is not None or end is not None:
            first = start or 0
            if first < 0 or (end is not None and end < first):
                raise ValueError(f"Invalid byte range: start={start}, end={end}")
            if end == first:
                # an empty window cannot be expressed as an HTTP range
                response = await self._call(self.client.head_object, key, **kwargs)
                return S3File(
                    stats=self._build_stats(key, response),
                    stream=FileStream(iter_bytes(b"")),
                    version_id=response.get("VersionId"),
                )
            kwargs["Range"] = f"bytes={first}-{'' if end is None else end - 1}"

        response = await self._call(self.client.get_object, key, **kwargs)
        body = response["Body"]

        return S3File(
            stats=self._build_stats(key, response),
            stream=FileStream(iter_binary_file(body, self.settings.chunk_size), resources=[body]),
            version_id=response.get("VersionId"),
        )

    async def delete(self, key: str) -> bool:
        await self._call(self.client.head_object, key, Bucket=self.bucket, Key=key)
        await self._call(self.client.delete_object, key, Bucket=self.bucket, Key=key)
        logger.debug(f"Deleted object: s3://{self.bucket}/{key}")
        return True

    async def copy(self, item: CopyOrMoveInput) -> str:
        return await self.copy_from_bucket(self.bucket, item.from_key, item.to_key)

    async def copy_from_bucket(self, source_bucket: str, from_key: str, to_key: str) -> str:
        """Server-side copy of ``source_bucket/from_key`` into this bucket."""
        await self._call(
            self.client.copy_object,
            from_key,
            Bucket=self.bucket,
            Key=to_key,
            CopySource={"Bucket": source_bucket, "Key": from_key},
        )
        return to_key

    async def move(self, item: CopyOrMoveInput) -> str:
        to_key = await self.copy(item)
        await self._call(self.client.delete_object, item.from_key, Bucket=self.bucket, Key=item.from_key)
        return to_key

    async def does_file_exist(self, key: str) -> bool:
        try:
            await self._call(self.client.head_object, key, Bucket=self.bucket, Key=key)
            return True
        except FileDoesNotExistError:
            return False

    async def get_file_stats(self, key: str) -> FileStats:
        response = await self._call(self.client.head_object, key, Bucket=self.bucket, Key=key)
        return self._build_stats(key, response)

    async def get_files_cursor(
        self,
        per_page: int = DEFAULT_PER_PAGE,
        prefix: str = ""
    ) -> AsyncIterator[List[FileStats]]:
        """Yield pages of object stats using the ``list_objects_v2`` paginator."""
        if per_page < 1:
            raise ValueError("per_page must be at least 1")

        paginator = self.client.get_paginator("list_objects_v2")
        pages = iter(paginator.paginate(
            Bucket=self.bucket,
            Prefix=prefix,
            PaginationConfig={"PageSize": per_page},
        ))

        while True:
            page = await self._next_page(pages)
            if page is None:
                break
            contents = page.get("Contents", [])
            if contents:
                yield [self._build_listing_stats(obj) for obj in contents]

    async def _next_page(self, pages) -> Optional[Dict[str, Any]]:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, next, pages, None)
        except ClientError as e:
            raise self._map_client_error(e, None) from e

    def _build_stats(self, key: str, response: Dict[str, Any]) -> FileStats:
        file_name = posixpath.basename(key)
        return FileStats(
            bucket=self.bucket,
            key=key,
            file_name=file_name,
            size=response.get("ContentLength", 0),
            mime_type=response.get("ContentType") or self._guess_mime_type(file_name),
            file_extension=posixpath.splitext(file_name)[1].lstrip(".").lower(),
            modified=response.get("LastModified"),
            etag=response.get("ETag"),
            metadata=response.get("Metadata", {}),
        )

    def _build_listing_stats(self, obj: Dict[str, Any]) -> FileStats:
        key = obj["Key"]
        file_name = posixpath.basename(key)
        return FileStats(
            bucket=self.bucket,
            key=key,
            file_name=file_name,
            size=obj.get("Size", 0),
            mime_type=self._guess_mime_type(file_name),
            file_extension=posixpath.splitext(file_name)[1].lstrip(".").lower(),
            modified=obj.get("LastModified"),
            etag=obj.get("ETag"),
        )

    @staticmethod
    def _guess_mime_type(file_name: str) -> str:
        mime_type, _ = mimetypes.guess_type(file_name)
        return mime_type or DEFAULT_MIME_TYPE
