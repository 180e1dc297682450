"""
Transfer between two local storages.
"""

from ...core.exceptions import TransferError
from ...domain.value_objects import UploadResult
from ..storage.file_storage import LocalFileStorage
from .base import StreamingTransfer, TransferOptions


class LocalToLocalTransfer(StreamingTransfer[LocalFileStorage, LocalFileStorage]):
    """
    Decrypts with the source codec and re-encrypts with the destination codec.

    The two storages may use different keys or algorithms, or none at all,
    so raw bytes are never copied between them.
    """

    async def transfer(self, options: TransferOptions[LocalFileStorage, LocalFileStorage]) -> UploadResult:
        key = options.source_file
        source_path = options.source_storage.get_safe_path(key)
        if source_path == options.destination_storage.get_safe_path(key):
            raise TransferError(
                f"Source and destination of {key} are the same file",
                error_code="SAME_FILE",
                details={"path": str(source_path)},
            )
        return await super().transfer(options)
