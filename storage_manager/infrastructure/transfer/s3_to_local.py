"""
Transfer from S3 to local storage.
"""

from ..storage.file_storage import LocalFileStorage
from ..storage.s3_storage import S3FileStorage
from .base import StreamingTransfer


class S3ToLocalTransfer(StreamingTransfer[S3FileStorage, LocalFileStorage]):
    """Streams the object body into local storage, encrypting it if configured."""
