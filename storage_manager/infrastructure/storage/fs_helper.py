"""
Async filesystem primitives used by the local storage backend.
"""

import asyncio
import os
import shutil
from pathlib import Path
from typing import AsyncIterator, List, Optional, Tuple, Union

import aiofiles
import aiofiles.os

from ...core.exceptions import FileDoesNotExistError, StorageError
from .streams import DEFAULT_CHUNK_SIZE

PathLike = Union[str, Path]


def _scan_directory(directory: Path) -> Tuple[List[Path], List[Path]]:
    files, directories = [], []
    with os.scandir(directory) as entries:
        for entry in sorted(entries, key=lambda e: e.name):
            if entry.is_dir(follow_symlinks=False):
                directories.append(Path(entry.path))
            elif entry.is_file(follow_symlinks=False):
                files.append(Path(entry.path))
    return files, directories


class FsHelper:
    """Thin async wrapper over filesystem calls with storage error mapping."""

    async def check_if_file_exists(self, file_path: PathLike) -> None:
        """Raise ``FileDoesNotExistError`` unless ``file_path`` is a regular file."""
        try:
            is_file = await aiofiles.os.path.isfile(file_path)
        except OSError as e:
            raise FileDoesNotExistError(str(file_path)) from e
        if not is_file:
            raise FileDoesNotExistError(str(file_path))

    async def stats(self, file_path: PathLike) -> os.stat_result:
        try:
            return await aiofiles.os.stat(file_path)
        except FileNotFoundError as e:
            raise FileDoesNotExistError(str(file_path)) from e
        except OSError as e:
            raise StorageError(f"Failed to stat {file_path}: {e}") from e

    async def make_dir(self, directory: PathLike) -> None:
        try:
            await aiofiles.os.makedirs(directory, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create directory {directory}: {e}") from e

    async def delete(self, file_path: PathLike) -> None:
        try:
            await aiofiles.os.remove(file_path)
        except FileNotFoundError as e:
            raise FileDoesNotExistError(str(file_path)) from e
        except OSError as e:
            raise StorageError(f"Failed to delete {file_path}: {e}") from e

    async def copy(self, from_path: PathLike, to_path: PathLike) -> None:
        await self.make_dir(Path(to_path).parent)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, shutil.copyfile, from_path, to_path)
        except OSError as e:
            raise StorageError(f"Failed to copy {from_path} to {to_path}: {e}") from e

    async def move(self, from_path: PathLike, to_path: PathLike) -> None:
        await self.make_dir(Path(to_path).parent)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, shutil.move, str(from_path), str(to_path))
        except OSError as e:
            raise StorageError(f"Failed to move {from_path} to {to_path}: {e}") from e

    async def walk_files(self, root: PathLike) -> AsyncIterator[Path]:
        """Yield every regular file below ``root`` in a stable order."""
        loop = asyncio.get_running_loop()
        pending = [Path(root)]
        while pending:
            directory = pending.pop()
            try:
                files, directories = await loop.run_in_executor(None, _scan_directory, directory)
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StorageError(f"Failed to list {directory}: {e}") from e

            for file_path in files:
                yield file_path
            pending.extend(reversed(directories))

    async def open_range(
        self,
        file_path: PathLike,
        start: int = 0,
        end: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> AsyncIterator[bytes]:
        """
        Read ``[start, end)`` of a file in chunks.

        Args:
            file_path: File to read
            start: First byte offset
            end: Exclusive end offset; ``None`` reads to the end of file
            chunk_size: Maximum chunk size
        """
        try:
            async with aiofiles.open(file_path, "rb") as f:
                await f.seek(start)
                remaining = None if end is None else max(0, end - start)
                while remaining is None or remaining > 0:
                    size = chunk_size if remaining is None else min(chunk_size, remaining)
                    chunk = await f.read(size)
                    if not chunk:
                        break
                    if remaining is not None:
                        remaining -= len(chunk)
                    yield chunk
        except FileNotFoundError as e:
            raise FileDoesNotExistError(str(file_path)) from e
        except OSError as e:
            raise StorageError(f"Failed to read {file_path}: {e}") from e
