"""
Transfer from local storage to S3.
"""

from ..storage.file_storage import LocalFileStorage
from ..storage.s3_storage import S3FileStorage
from .base import StreamingTransfer


class LocalToS3Transfer(StreamingTransfer[LocalFileStorage, S3FileStorage]):
    """Uploads the decrypted local file to S3 under the same key."""
