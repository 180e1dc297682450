"""
Cross-storage copy and move.
"""

from typing import Any, Optional

from ...core.logging import get_logger
from ..storage.base import StorageBackend
from .factory import TransferFactory

logger = get_logger(__name__)


class FileManager:
    """Copies and moves files between any two registered storages."""

    def __init__(self, transfer_factory: Optional[TransferFactory] = None):
        self.transfer_factory = transfer_factory or TransferFactory()

    async def copy(self, source_storage: StorageBackend, destination_storage: StorageBackend, source_file: str) -> Any:
        """
        Copy a file to another storage under the same key.

        Returns:
            Upload result of the destination
        """
        return await self.transfer_factory.create(source_storage, destination_storage, source_file)

    async def move(self, source_storage: StorageBackend, destination_storage: StorageBackend, source_file: str) -> Any:
        """Copy a file to another storage, then delete it from the source."""
        result = await self.transfer_factory.create(source_storage, destination_storage, source_file)
        await source_storage.delete(source_file)
        logger.info(f"Moved {source_file}", source=source_storage.bucket, destination=destination_storage.bucket)
        return result
