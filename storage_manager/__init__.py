"""
Storage Manager

Pluggable local and S3 file storage with transparent streaming AEAD
encryption of locally stored files and cross-storage transfers.
"""

__version__ = "1.0.0"

# Library metadata
__title__ = "Storage Manager"
__description__ = "Local and S3 file storage with streaming at-rest encryption"

# Export main library components
from .core.config import (
    EncryptionAlgorithm,
    LocalStorageSettings,
    S3StorageSettings,
    Settings,
    get_settings
)
from .core.exceptions import (
    StorageManagerError,
    StorageError,
    FileDoesNotExistError,
    InvalidPathError,
    IntegrityError,
    TransferError
)
from .domain import CopyOrMoveInput, UploadOptions, FileStats, UploadResult
from .infrastructure.storage import (
    LocalFileStorage,
    S3FileStorage,
    StorageFactory,
    StorageRegistry
)
from .infrastructure.transfer import FileManager, TransferFactory

__all__ = [
    # Metadata
    "__version__",
    "__title__",
    "__description__",

    # Configuration
    "EncryptionAlgorithm",
    "LocalStorageSettings",
    "S3StorageSettings",
    "Settings",
    "get_settings",

    # Exceptions
    "StorageManagerError",
    "StorageError",
    "FileDoesNotExistError",
    "InvalidPathError",
    "IntegrityError",
    "TransferError",

    # Domain
    "CopyOrMoveInput",
    "UploadOptions",
    "FileStats",
    "UploadResult",

    # Storages and transfers
    "LocalFileStorage",
    "S3FileStorage",
    "StorageFactory",
    "StorageRegistry",
    "FileManager",
    "TransferFactory"
]
