"""
Transfer selection by storage pair.
"""

from typing import Any, Dict, Tuple, Type

from ...core.exceptions import TransferError
from ..storage.base import StorageBackend
from ..storage.file_storage import LocalFileStorage
from ..storage.s3_storage import S3FileStorage
from .base import AbstractTransfer, TransferOptions
from .local_to_local import LocalToLocalTransfer
from .local_to_s3 import LocalToS3Transfer
from .s3_to_local import S3ToLocalTransfer
from .s3_to_s3 import S3ToS3Transfer


class TransferFactory:
    """Picks and runs the transfer implementation for a source/destination pair."""

    def __init__(self):
        self._transfers: Dict[Tuple[Type[StorageBackend], Type[StorageBackend]], AbstractTransfer] = {
            (LocalFileStorage, LocalFileStorage): LocalToLocalTransfer(),
            (LocalFileStorage, S3FileStorage): LocalToS3Transfer(),
            (S3FileStorage, LocalFileStorage): S3ToLocalTransfer(),
            (S3FileStorage, S3FileStorage): S3ToS3Transfer(),
        }

    def get_transfer(self, source: StorageBackend, destination: StorageBackend) -> AbstractTransfer:
        """
        Find the transfer for two storage instances.

        Raises:
            TransferError: If no transfer exists for the pair
        """
        for (source_type, destination_type), transfer in self._transfers.items():
            if isinstance(source, source_type) and isinstance(destination, destination_type):
                return transfer

        raise TransferError(
            f'Cannot transfer between "{type(source).__name__}" and "{type(destination).__name__}" storages',
            error_code="UNSUPPORTED_TRANSFER",
        )

    async def create(self, source: StorageBackend, destination: StorageBackend, key: str) -> Any:
        """Transfer ``key`` from ``source`` to ``destination``."""
        transfer = self.get_transfer(source, destination)
        return await transfer.transfer(TransferOptions(source, destination, key))
