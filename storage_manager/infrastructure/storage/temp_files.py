"""
Scoped scratch area for staged operations.

The host application calls ``init()`` at startup and ``shutdown()`` when it
stops; shutdown removes the whole directory.
"""

import asyncio
import shutil
import uuid
from pathlib import Path
from typing import Any, Optional, Tuple

import aiofiles
import aiofiles.os

from ...core.exceptions import StorageError
from ...core.logging import get_logger
from .fs_helper import FsHelper
from .streams import DEFAULT_CHUNK_SIZE, FileStream

logger = get_logger(__name__)


class TempFileManager:
    """Creates uniquely named temporary files inside one directory."""

    def __init__(self, directory: str, fs_helper: Optional[FsHelper] = None):
        self.directory = Path(directory).resolve()
        self.fs_helper = fs_helper or FsHelper()
        self._initialized = False

    async def init(self) -> None:
        await self.fs_helper.make_dir(self.directory)
        self._initialized = True
        logger.debug(f"Temp directory ready: {self.directory}")

    async def shutdown(self) -> None:
        """Remove the temp directory and everything in it."""
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, shutil.rmtree, self.directory)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove temp directory {self.directory}: {e}")
        self._initialized = False

    async def create_temp_file(self, file_name: str = "") -> Tuple[Path, Any]:
        """
        Create a new temp file opened for binary writing.

        Args:
            file_name: Name used only to carry over the extension

        Returns:
            Tuple of (path, aiofiles write handle)
        """
        if not self._initialized:
            await self.init()

        path = self.directory / f"{uuid.uuid4()}{Path(file_name).suffix}"
        try:
            handle = await aiofiles.open(path, "wb")
        except OSError as e:
            raise StorageError(f"Failed to create temp file: {e}") from e
        return path, handle

    async def remove_temp_file(self, path: Path) -> None:
        """Delete a temp file; missing files are ignored."""
        path = self._check_owned(path)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove temp file {path}: {e}")

    def open_temp_file_stream(self, path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> FileStream:
        """Stream a temp file and delete it once the stream is exhausted or closed."""
        path = self._check_owned(path)
        return FileStream(self._read_and_remove(path, chunk_size))

    async def _read_and_remove(self, path: Path, chunk_size: int):
        chunks = self.fs_helper.open_range(path, chunk_size=chunk_size)
        try:
            async for chunk in chunks:
                yield chunk
        finally:
            await chunks.aclose()
            await self.remove_temp_file(path)

    def _check_owned(self, path: Path) -> Path:
        resolved = Path(path).resolve()
        if not resolved.is_relative_to(self.directory):
            raise StorageError(f'"{path}" is not a temp file')
        return resolved
