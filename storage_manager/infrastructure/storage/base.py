"""
Abstract storage interface and shared upload helpers.
"""

import asyncio
import mimetypes
import secrets
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, List, Optional, Union

import aiofiles.os
import aiohttp

from ...core.exceptions import FileDoesNotExistError, FileDownloadError, FileTypeError
from ...core.logging import get_logger
from ...domain.value_objects import CopyOrMoveInput, FileStats, UploadOptions, UploadResult
from ...utils.urls import is_valid_url, join_key, url_file_name
from .streams import DEFAULT_CHUNK_SIZE, ByteSource, FileStream, close_stream, iter_source

logger = get_logger(__name__)

DEFAULT_PER_PAGE = 10
DEFAULT_MIME_TYPE = "application/octet-stream"

# Results of batch operations: one value or exception per input
Settled = List[Union[Any, BaseException]]


@dataclass
class StoredFile:
    """File metadata together with a readable stream of its contents."""
    stats: FileStats
    stream: FileStream
    encrypted: bool = False


@dataclass
class ResolvedSource:
    """An upload source normalised to a byte stream plus naming information."""
    stream: AsyncIterator[bytes]
    file_name: str
    extension: str
    mime_type: str
    source: Any = None

    async def aclose(self) -> None:
        """Close the stream and the caller supplied async source behind it."""
        try:
            await close_stream(self.stream)
        finally:
            await close_stream(self.source)


def describe_file(name: Optional[str], content_type: Optional[str] = None) -> tuple:
    """
    Work out extension and mime type from a file name or content type.

    Returns:
        Tuple of (extension without dot, mime type)

    Raises:
        FileTypeError: If no extension can be determined
    """
    extension, mime_type = "", None
    if name:
        extension = Path(name).suffix.lstrip(".").lower()
        mime_type, _ = mimetypes.guess_type(name)

    if content_type:
        content_type = content_type.split(";")[0].strip().lower()
        if not extension:
            guessed = mimetypes.guess_extension(content_type)
            extension = guessed.lstrip(".") if guessed else ""
        mime_type = mime_type or content_type

    if not extension:
        raise FileTypeError()

    return extension, mime_type or DEFAULT_MIME_TYPE


class DownloadStream:
    """Async byte iterator over an HTTP response body that owns its session."""

    def __init__(self, url: str, session: aiohttp.ClientSession, response: aiohttp.ClientResponse, chunk_size: int):
        self.url = url
        self._session = session
        self._response = response
        self._chunks = response.content.iter_chunked(chunk_size)
        self._closed = False

    def __aiter__(self) -> "DownloadStream":
        return self

    async def __anext__(self) -> bytes:
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            await self.aclose()
            raise
        except aiohttp.ClientError as e:
            await self.aclose()
            raise FileDownloadError(f'Download of "{self.url}" failed: {e}') from e

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            self._response.close()
            await self._session.close()


class StorageBackend(ABC):
    """Abstract storage backend interface."""

    @property
    @abstractmethod
    def bucket(self) -> str:
        """Bucket (or storage folder) the backend operates on."""
        pass

    @abstractmethod
    async def upload(
        self,
        source: ByteSource,
        options: Optional[UploadOptions] = None
    ) -> UploadResult:
        """
        Upload a file to the storage.

        Args:
            source: Bytes, path, URL, binary file object, or byte stream
            options: Naming and cleanup options

        Returns:
            Location of the stored file
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete a file from the storage.

        Args:
            key: Storage key

        Returns:
            True if deleted successfully
        """
        pass

    @abstractmethod
    async def copy(self, item: CopyOrMoveInput) -> str:
        """
        Copy a file inside the storage.

        Returns:
            Destination key
        """
        pass

    @abstractmethod
    async def move(self, item: CopyOrMoveInput) -> str:
        """
        Move a file inside the storage.

        Returns:
            Destination key
        """
        pass

    @abstractmethod
    async def does_file_exist(self, key: str) -> bool:
        """Check if a file exists in the storage."""
        pass

    @abstractmethod
    async def get_file_stats(self, key: str) -> FileStats:
        """Get file metadata."""
        pass

    @abstractmethod
    async def get_file(self, key: str, **options) -> StoredFile:
        """Get file metadata together with a readable stream."""
        pass

    @abstractmethod
    def get_files_cursor(self, per_page: int = DEFAULT_PER_PAGE, **options) -> AsyncIterator[List[FileStats]]:
        """Iterate over all files of the storage, one page at a time."""
        pass

    async def upload_many(
        self,
        sources: List[ByteSource],
        options: Optional[UploadOptions] = None
    ) -> Settled:
        return await self._settle(self.upload(source, options) for source in sources)

    async def delete_many(self, keys: List[str]) -> Settled:
        return await self._settle(self.delete(key) for key in keys)

    async def copy_many(self, items: List[CopyOrMoveInput]) -> Settled:
        return await self._settle(self.copy(item) for item in items)

    async def move_many(self, items: List[CopyOrMoveInput]) -> Settled:
        return await self._settle(self.move(item) for item in items)

    async def does_file_exist_many(self, keys: List[str]) -> Settled:
        return await self._settle(self.does_file_exist(key) for key in keys)

    @staticmethod
    async def _settle(awaitables) -> Settled:
        """Run all operations concurrently, collecting results and errors alike."""
        tasks: List[Awaitable] = list(awaitables)
        return list(await asyncio.gather(*tasks, return_exceptions=True))

    def generate_sub_directories(self, options: UploadOptions) -> str:
        """Sub-directory key prefix; by default 8 single hex character levels."""
        generator = options.generate_sub_directories
        if callable(generator):
            return generator()
        if generator is False:
            return ""
        return join_key(*secrets.token_hex(4))

    def generate_unique_file_name(
        self,
        extension: str,
        options: UploadOptions,
        original_name: Optional[str] = None
    ) -> str:
        generator = options.generate_unique_file_name
        if callable(generator):
            return generator(extension)
        if generator is False and original_name:
            return Path(original_name).name
        return f"{uuid.uuid4()}.{extension}"

    def generate_key(self, resolved: "ResolvedSource", options: UploadOptions) -> str:
        return join_key(self.generate_sub_directories(options), resolved.file_name)

    async def resolve_source(
        self,
        source: ByteSource,
        options: UploadOptions,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> ResolvedSource:
        """
        Normalise an upload source and decide its stored file name.

        Raises:
            FileDownloadError: If a URL source cannot be fetched
            FileTypeError: If the file type cannot be determined
        """
        content_type = options.content_type
        name = options.file_name

        if is_valid_url(source):
            stream, response_type = await self.download_file(source, chunk_size)
            name = name or url_file_name(source)
            content_type = content_type or response_type
        else:
            if isinstance(source, (str, Path)):
                if not await aiofiles.os.path.isfile(source):
                    raise FileDoesNotExistError(str(source))
                name = name or Path(source).name
            elif not name and isinstance(getattr(source, "name", None), str):
                name = Path(source.name).name or None
            stream = iter_source(source, chunk_size)

        try:
            extension, mime_type = describe_file(name, content_type)
        except FileTypeError:
            await close_stream(stream)
            await close_stream(source)
            raise

        file_name = self.generate_unique_file_name(extension, options, name)
        return ResolvedSource(
            stream=stream,
            file_name=file_name,
            extension=extension,
            mime_type=options.content_type or mime_type,
            source=source,
        )

    async def download_file(self, url: str, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Open a streaming download of ``url``.

        Returns:
            Tuple of (async byte iterator, response content type)
        """
        session = aiohttp.ClientSession()
        try:
            response = await session.get(url)
        except aiohttp.ClientError as e:
            await session.close()
            raise FileDownloadError(f'Could not download file from "{url}": {e}') from e

        if response.status >= 400:
            response.close()
            await session.close()
            raise FileDownloadError(
                f'Could not download file from "{url}": HTTP {response.status}'
            )

        content_type = response.headers.get("Content-Type")
        logger.debug(f"Downloading {url} ({content_type})")
        return DownloadStream(url, session, response, chunk_size), content_type
