"""
Transfers of files between storages.

- Local to local (decrypt, then re-encrypt for the destination)
- Local to S3 and S3 to local (streamed through the upload path)
- S3 to S3 (server-side copy)
"""

from .base import AbstractTransfer, StreamingTransfer, TransferOptions
from .local_to_local import LocalToLocalTransfer
from .local_to_s3 import LocalToS3Transfer
from .s3_to_local import S3ToLocalTransfer
from .s3_to_s3 import S3ToS3Transfer
from .factory import TransferFactory
from .file_manager import FileManager

__all__ = [
    "AbstractTransfer",
    "StreamingTransfer",
    "TransferOptions",
    "LocalToLocalTransfer",
    "LocalToS3Transfer",
    "S3ToLocalTransfer",
    "S3ToS3Transfer",
    "TransferFactory",
    "FileManager"
]
