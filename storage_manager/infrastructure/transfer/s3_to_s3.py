"""
Transfer between two S3 buckets.
"""

from ...domain.value_objects import UploadResult
from ..storage.s3_storage import S3FileStorage
from .base import AbstractTransfer, TransferOptions


class S3ToS3Transfer(AbstractTransfer[S3FileStorage, S3FileStorage]):
    """Server-side ``copy_object``; the data never passes through this process."""

    async def transfer(self, options: TransferOptions[S3FileStorage, S3FileStorage]) -> UploadResult:
        key = options.source_file
        destination = options.destination_storage
        await destination.copy_from_bucket(options.source_storage.bucket, key, key)
        return UploadResult(bucket=destination.bucket, key=key)
