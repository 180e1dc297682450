"""
Async byte stream helpers.

Streams are plain async iterators of ``bytes``. ``pipe`` is the single
driver that runs a source through transforms into a sink and guarantees
that the source is closed and unfinished transforms are disposed on every
exit path, including cancellation.
"""

import asyncio
from pathlib import Path
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Iterable,
    Optional,
    Protocol,
    Sequence,
    Union,
)

import aiofiles

DEFAULT_CHUNK_SIZE = 64 * 1024

ByteSource = Union[bytes, bytearray, memoryview, str, Path, Any, AsyncIterable[bytes], Iterable[bytes]]


class StreamTransform(Protocol):
    """Incremental transform such as a cipher."""

    def update(self, data: bytes) -> bytes:
        ...

    def finalize(self) -> bytes:
        ...

    def close(self) -> None:
        ...


async def close_stream(stream: Any) -> None:
    """Close an async iterator if it supports ``aclose``."""
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()


def _close_transforms(transforms: Sequence[StreamTransform]) -> None:
    for transform in transforms:
        transform.close()


async def iter_bytes(data: Union[bytes, bytearray, memoryview], chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    view = memoryview(data)
    for offset in range(0, len(view), chunk_size):
        yield bytes(view[offset:offset + chunk_size])


async def iter_path(path: Union[str, Path], chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    async with aiofiles.open(path, "rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            yield chunk


async def iter_binary_file(file_obj: Any, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Read a blocking binary file object without blocking the event loop."""
    loop = asyncio.get_running_loop()
    while True:
        chunk = await loop.run_in_executor(None, file_obj.read, chunk_size)
        if not chunk:
            break
        yield bytes(chunk)


async def iter_async(source: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    try:
        async for chunk in source:
            if chunk:
                yield bytes(chunk)
    finally:
        await close_stream(source)


async def iter_sync(source: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in source:
        if chunk:
            yield bytes(chunk)


def iter_source(source: ByteSource, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """
    Turn any supported upload source into an async byte iterator.

    Args:
        source: Bytes, filesystem path, binary file object, or (async) iterable of bytes
        chunk_size: Read size for buffers, paths and file objects

    Returns:
        Async iterator of byte chunks
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return iter_bytes(source, chunk_size)
    if isinstance(source, (str, Path)):
        return iter_path(source, chunk_size)
    if hasattr(source, "__aiter__"):
        return iter_async(source)
    if hasattr(source, "read"):
        return iter_binary_file(source, chunk_size)
    if hasattr(source, "__iter__"):
        return iter_sync(source)
    raise TypeError(f"Unsupported byte source: {type(source).__name__}")


async def pipe(
    source: AsyncIterable[bytes],
    sink: Any,
    transforms: Sequence[StreamTransform] = (),
) -> int:
    """
    Run ``source`` through ``transforms`` into ``sink`` until completion.

    ``sink`` only needs an awaitable ``write``. Any failure aborts the whole
    pipeline and propagates to the caller.

    Returns:
        Number of bytes written to the sink
    """
    written = 0
    try:
        async for chunk in source:
            for transform in transforms:
                chunk = transform.update(chunk)
            if chunk:
                await sink.write(chunk)
                written += len(chunk)

        tail = b""
        for transform in transforms:
            tail = transform.update(tail) + transform.finalize()
        if tail:
            await sink.write(tail)
            written += len(tail)
        return written
    except BaseException:
        _close_transforms(transforms)
        raise
    finally:
        await close_stream(source)


async def transform_stream(
    source: AsyncIterable[bytes],
    transforms: Sequence[StreamTransform] = (),
) -> AsyncIterator[bytes]:
    """Lazily apply ``transforms`` to ``source``; finalize errors surface at the end."""
    try:
        async for chunk in source:
            for transform in transforms:
                chunk = transform.update(chunk)
            if chunk:
                yield chunk

        tail = b""
        for transform in transforms:
            tail = transform.update(tail) + transform.finalize()
        if tail:
            yield tail
    finally:
        # no-op for finalized transforms
        _close_transforms(transforms)
        await close_stream(source)


async def slice_stream(
    source: AsyncIterable[bytes],
    start: int = 0,
    end: Optional[int] = None,
) -> AsyncIterator[bytes]:
    """
    Yield the ``[start, end)`` window of ``source``.

    The source is always consumed to the end so that authenticated streams
    still verify their tag.
    """
    position = 0
    try:
        async for chunk in source:
            chunk_start, chunk_end = position, position + len(chunk)
            position = chunk_end

            lower = max(start, chunk_start)
            upper = chunk_end if end is None else min(end, chunk_end)
            if lower < upper:
                yield chunk[lower - chunk_start:upper - chunk_start]
    finally:
        await close_stream(source)


class FileStream:
    """
    Readable async byte stream handed to callers.

    Iterate it, ``read()`` it whole, or use it as an async context manager.
    ``aclose()`` aborts the stream and releases file handles and ciphers.
    """

    def __init__(self, iterator: AsyncIterator[bytes], resources: Sequence[StreamTransform] = ()):
        self._iterator = iterator
        self._resources = list(resources)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "FileStream":
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._iterator.__anext__()
        except BaseException:
            # end of stream, error or cancellation
            await self.aclose()
            raise

    async def read(self) -> bytes:
        """Consume the remaining stream into memory."""
        buffer = bytearray()
        async for chunk in self:
            buffer.extend(chunk)
        return bytes(buffer)

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            try:
                await close_stream(self._iterator)
            finally:
                _close_transforms(self._resources)

    async def __aenter__(self) -> "FileStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
