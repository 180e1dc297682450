"""
Base class for moving files between two storages.
"""

import posixpath
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from ...core.logging import get_logger
from ...domain.value_objects import UploadOptions, UploadResult
from ..storage.base import StorageBackend

logger = get_logger(__name__)

SourceT = TypeVar("SourceT", bound=StorageBackend)
DestinationT = TypeVar("DestinationT", bound=StorageBackend)


@dataclass(frozen=True)
class TransferOptions(Generic[SourceT, DestinationT]):
    """Source and destination storage plus the key of the file to transfer."""
    source_storage: SourceT
    destination_storage: DestinationT
    source_file: str


class AbstractTransfer(ABC, Generic[SourceT, DestinationT]):
    """Copies one file from a source storage to a destination storage under the same key."""

    @abstractmethod
    async def transfer(self, options: TransferOptions[SourceT, DestinationT]) -> Any:
        pass

    @staticmethod
    def preserve_sub_directories(key: str) -> str:
        """Directory part of ``key``; empty for top level keys."""
        return posixpath.dirname(key)

    @staticmethod
    def preserve_file_name(key: str) -> str:
        return posixpath.basename(key)

    def preserving_upload_options(self, key: str, content_type: Optional[str] = None) -> UploadOptions:
        """Upload options that store the file under exactly ``key``."""
        sub_directories = self.preserve_sub_directories(key)
        file_name = self.preserve_file_name(key)
        return UploadOptions(
            generate_sub_directories=lambda: sub_directories,
            generate_unique_file_name=lambda extension: file_name,
            file_name=file_name,
            content_type=content_type,
        )


class StreamingTransfer(AbstractTransfer[SourceT, DestinationT]):
    """Reads the source as plaintext and writes it through the destination's upload path."""

    async def transfer(self, options: TransferOptions[SourceT, DestinationT]) -> UploadResult:
        key = options.source_file
        stored = await options.source_storage.get_file(key)

        async with stored.stream:
            result = await options.destination_storage.upload(
                stored.stream,
                self.preserving_upload_options(key, stored.stats.mime_type),
            )

        logger.debug(
            f"Transferred {key}",
            source=options.source_storage.bucket,
            destination=options.destination_storage.bucket,
        )
        return result
