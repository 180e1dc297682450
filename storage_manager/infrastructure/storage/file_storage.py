"""
Local filesystem storage implementation with optional at-rest encryption.

Encrypted files are stored as ``ciphertext || auth tag || iv || marker``.
Files without a valid marker are served unchanged, so plain files written
before encryption was enabled stay readable.
"""

import asyncio
import mimetypes
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, List, Optional

import aiofiles

from ...core.config import LocalStorageSettings, TempFileSettings
from ...core.exceptions import FileDoesNotExistError, InvalidPathError, StorageError
from ...core.logging import get_logger
from ...domain.value_objects import CopyOrMoveInput, FileStats, UploadOptions, UploadResult
from ..encryption import EnvelopeTrailer, FileEncryptor, create_encryption_strategy
from .base import DEFAULT_MIME_TYPE, DEFAULT_PER_PAGE, ResolvedSource, StorageBackend, StoredFile
from .fs_helper import FsHelper
from .streams import ByteSource, FileStream, pipe, slice_stream, transform_stream
from .temp_files import TempFileManager

logger = get_logger(__name__)


def write_failed(file_path: Path, error: OSError) -> StorageError:
    return StorageError(f"Failed to write file {file_path}: {error}")


class DiskSink:
    """
    Write side of an upload.

    Only disk errors become ``StorageError``; errors raised by the source
    while ``pipe`` iterates it reach the caller unchanged.
    """

    def __init__(self, handle, file_path: Path):
        self.handle = handle
        self.file_path = file_path

    async def write(self, data: bytes) -> None:
        try:
            await self.handle.write(data)
        except OSError as e:
            raise write_failed(self.file_path, e) from e

    async def close(self) -> None:
        try:
            await self.handle.close()
        except OSError as e:
            raise write_failed(self.file_path, e) from e


class LocalFileStorage(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(
        self,
        settings: LocalStorageSettings,
        fs_helper: Optional[FsHelper] = None,
        encryptor: Optional[FileEncryptor] = None,
        temp_files: Optional[TempFileManager] = None,
    ):
        self.settings = settings
        self.fs_helper = fs_helper or FsHelper()
        self.encryptor = encryptor or FileEncryptor()
        self.temp_files = temp_files

        self.storage_path = (Path(settings.root_path) / settings.bucket).resolve()
        self.storage_path.mkdir(parents=True, exist_ok=True)

        strategy = create_encryption_strategy(settings.encryption_algorithm, settings.key_bytes)
        if strategy is not None:
            self.encryptor.set_strategy(strategy)

        logger.info(
            f"Initialized local storage at: {self.storage_path}",
            encryption=strategy.algorithm.value if strategy else None,
        )

    @property
    def bucket(self) -> str:
        return self.settings.bucket

    @property
    def options(self) -> LocalStorageSettings:
        return self.settings

    def get_safe_path(self, key: str) -> Path:
        """
        Resolve ``key`` inside the storage directory.

        Raises:
            InvalidPathError: If the resolved path escapes the storage directory
        """
        resolved = (self.storage_path / key).resolve()
        if not resolved.is_relative_to(self.storage_path):
            raise InvalidPathError(str(resolved))
        return resolved

    def get_relative_path(self, absolute_path: Path) -> str:
        return Path(absolute_path).relative_to(self.storage_path).as_posix()

    async def upload(
        self,
        source: ByteSource,
        options: Optional[UploadOptions] = None
    ) -> UploadResult:
        """Stream ``source`` to disk, encrypting it when a codec is configured."""
        options = options or UploadOptions()
        resolved = await self.resolve_source(source, options, self.settings.chunk_size)

        try:
            file_path = self.get_safe_path(self.generate_key(resolved, options))
        except InvalidPathError:
            await resolved.aclose()
            raise

        await self._write_to_disk(resolved, file_path, options)
        logger.debug(f"Saved file to: {file_path}")

        return UploadResult(
            bucket=self.bucket,
            key=self.get_relative_path(file_path),
            absolute_path=str(file_path),
        )

    async def _write_to_disk(
        self,
        resolved: ResolvedSource,
        file_path: Path,
        options: UploadOptions
    ) -> None:
        delete_on_error = options.delete_file_on_error
        if delete_on_error is None:
            delete_on_error = self.settings.delete_file_on_error

        try:
            await self.fs_helper.make_dir(file_path.parent)
            await self._write_stream(resolved.stream, file_path)
        except BaseException:
            await resolved.aclose()
            if delete_on_error:
                await self._discard_partial_file(file_path)
            raise
        await resolved.aclose()

    async def _write_stream(self, stream: AsyncIterator[bytes], file_path: Path) -> None:
        handle = await self._open_for_write(file_path, "wb")
        sink = DiskSink(handle, file_path)

        context = None
        if self.encryptor.is_encryption_enabled():
            context = self.encryptor.create_encryption()
        transforms = [context.cipher] if context else []

        try:
            await pipe(stream, sink, transforms)
        except BaseException:
            try:
                await sink.close()
            except StorageError as e:
                logger.warning(f"Failed to close {file_path} after an aborted write: {e}")
            raise
        await sink.close()

        # trailer goes after the ciphertext, once the cipher produced its tag
        if context is not None:
            writer = await self._open_for_write(file_path, "ab")
            try:
                await self.encryptor.append_encryption_vitals(
                    writer, context.cipher.tag, context.iv
                )
            except OSError as e:
                raise write_failed(file_path, e) from e

    @staticmethod
    async def _open_for_write(file_path: Path, mode: str):
        try:
            return await aiofiles.open(file_path, mode)
        except OSError as e:
            raise write_failed(file_path, e) from e

    async def _discard_partial_file(self, file_path: Path) -> None:
        logger.debug(f'deleting file: "{file_path}"')
        try:
            await self.fs_helper.delete(file_path)
        except FileDoesNotExistError:
            pass
        except StorageError as e:
            logger.warning(f"Failed to delete partially written file {file_path}: {e}")

    async def get_file(
        self,
        key: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
        verify_first: bool = False,
    ) -> StoredFile:
        """
        Open a stored file for reading.

        Args:
            key: Storage key
            start: First plaintext byte to return
            end: Exclusive end of the plaintext range
            verify_first: Decrypt into a temp file and check the tag before
                returning the stream

        Returns:
            File stats and a plaintext stream
        """
        if (start is not None and start < 0) or (end is not None and end < (start or 0)):
            raise ValueError(f"Invalid byte range: start={start}, end={end}")

        safe_path = self.get_safe_path(key)
        await self.fs_helper.check_if_file_exists(safe_path)
        stats = await self._internal_get_file_stats(safe_path)
        chunk_size = self.settings.chunk_size

        trailer = await self._read_trailer(safe_path, stats.size)
        if trailer is None:
            chunks = self.fs_helper.open_range(safe_path, start or 0, end, chunk_size)
            return StoredFile(stats=stats, stream=FileStream(chunks), encrypted=False)

        decipher = self.encryptor.create_decryption(trailer.iv, trailer.auth_tag)
        ciphertext = self.fs_helper.open_range(
            safe_path, 0, self.encryptor.encrypted_file_end(stats.size), chunk_size
        )
        plaintext = transform_stream(ciphertext, [decipher])

        if verify_first:
            plaintext = await self._stage_decrypted(plaintext, safe_path, decipher)
        if start is not None or end is not None:
            plaintext = slice_stream(plaintext, start or 0, end)

        return StoredFile(
            stats=stats,
            stream=FileStream(plaintext, resources=[decipher]),
            encrypted=True,
        )

    async def _read_trailer(self, safe_path: Path, file_size: int) -> Optional[EnvelopeTrailer]:
        """Return the trailer of an encrypted file, or ``None`` for plain files."""
        if not self.encryptor.is_encryption_enabled():
            return None
        if file_size < self.encryptor.trailer_length:
            # too small to carry an envelope
            return None

        tail = self.fs_helper.open_range(
            safe_path, self.encryptor.encryption_vitals_start(file_size), file_size
        )
        trailer = await self.encryptor.get_encryption_vitals(tail)
        if not self.encryptor.is_encrypted(trailer.marker):
            return None
        return trailer

    async def _stage_decrypted(self, plaintext, safe_path: Path, decipher) -> FileStream:
        temp_files = self._get_temp_files()
        temp_path, handle = await temp_files.create_temp_file(safe_path.name)
        try:
            try:
                await pipe(plaintext, handle)
            finally:
                await handle.close()
        except BaseException:
            decipher.close()
            await temp_files.remove_temp_file(temp_path)
            raise
        return temp_files.open_temp_file_stream(temp_path, self.settings.chunk_size)

    def _get_temp_files(self) -> TempFileManager:
        if self.temp_files is None:
            self.temp_files = TempFileManager(TempFileSettings().directory, self.fs_helper)
        return self.temp_files

    async def delete(self, key: str) -> bool:
        safe_path = self.get_safe_path(key)
        await self.fs_helper.check_if_file_exists(safe_path)
        await self.fs_helper.delete(safe_path)
        logger.debug(f"Deleted file: {safe_path}")
        return True

    async def copy(self, item: CopyOrMoveInput) -> str:
        safe_from = self.get_safe_path(item.from_key)
        safe_to = self.get_safe_path(item.to_key)
        await self.fs_helper.check_if_file_exists(safe_from)

        await self.fs_helper.copy(safe_from, safe_to)
        return self.get_relative_path(safe_to)

    async def move(self, item: CopyOrMoveInput) -> str:
        safe_from = self.get_safe_path(item.from_key)
        safe_to = self.get_safe_path(item.to_key)
        await self.fs_helper.check_if_file_exists(safe_from)

        await self.fs_helper.move(safe_from, safe_to)
        return self.get_relative_path(safe_to)

    async def does_file_exist(self, key: str) -> bool:
        safe_path = self.get_safe_path(key)
        try:
            await self.fs_helper.check_if_file_exists(safe_path)
            return True
        except FileDoesNotExistError:
            return False

    async def get_file_stats(self, key: str) -> FileStats:
        safe_path = self.get_safe_path(key)
        await self.fs_helper.check_if_file_exists(safe_path)
        return await self._internal_get_file_stats(safe_path)

    async def get_files_cursor(self, per_page: int = DEFAULT_PER_PAGE) -> AsyncIterator[List[FileStats]]:
        """Yield pages of file stats for every file below the storage directory."""
        if per_page < 1:
            raise ValueError("per_page must be at least 1")

        batch: List[Path] = []
        async for file_path in self.fs_helper.walk_files(self.storage_path):
            batch.append(file_path)
            if len(batch) >= per_page:
                yield await self._process_file_batch(batch)
                batch = []

        if batch:
            yield await self._process_file_batch(batch)

    async def _process_file_batch(self, files: List[Path]) -> List[FileStats]:
        return list(await asyncio.gather(*(self._internal_get_file_stats(f) for f in files)))

    async def _internal_get_file_stats(self, absolute_path: Path) -> FileStats:
        stat = await self.fs_helper.stats(absolute_path)
        mime_type, _ = mimetypes.guess_type(absolute_path.name)

        return FileStats(
            bucket=self.bucket,
            key=self.get_relative_path(absolute_path),
            file_name=absolute_path.name,
            size=stat.st_size,
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            file_extension=absolute_path.suffix.lstrip(".").lower(),
            created=datetime.fromtimestamp(stat.st_ctime),
            modified=datetime.fromtimestamp(stat.st_mtime),
            absolute_path=str(absolute_path),
        )
