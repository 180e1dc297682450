"""
Storage infrastructure for file management.

This package provides file storage abstractions and implementations:
- Base storage interface with batch operations and upload source handling
- Local file system storage with transparent at-rest encryption
- S3 compatible object storage
- Temporary file management and async stream helpers
"""

from .base import StorageBackend, StoredFile, ResolvedSource, DEFAULT_PER_PAGE
from .streams import FileStream, pipe, iter_source
from .fs_helper import FsHelper
from .temp_files import TempFileManager
from .file_storage import LocalFileStorage
from .s3_storage import S3FileStorage, S3File, create_s3_client

# Dependency injection
from .dependencies import (
    StorageFactory,
    StorageRegistry,
    initialize_storages,
    get_storage_registry
)

__all__ = [
    # Base interfaces
    "StorageBackend",
    "StoredFile",
    "ResolvedSource",
    "DEFAULT_PER_PAGE",

    # Streams and helpers
    "FileStream",
    "pipe",
    "iter_source",
    "FsHelper",
    "TempFileManager",

    # Backends
    "LocalFileStorage",
    "S3FileStorage",
    "S3File",
    "create_s3_client",

    # Dependencies
    "StorageFactory",
    "StorageRegistry",
    "initialize_storages",
    "get_storage_registry"
]
