"""
Core configuration and utilities.

This package contains the fundamental components of the library:
- Configuration management (settings, environment variables)
- Exceptions and error handling
- Logging configuration
"""

from .config import (
    EncryptionAlgorithm,
    LocalStorageSettings,
    S3StorageSettings,
    TempFileSettings,
    LoggingSettings,
    Settings,
    get_settings
)

from .exceptions import (
    StorageManagerError,
    ConfigurationError,
    MisconfiguredCodecError,
    StorageError,
    InvalidPathError,
    FileDoesNotExistError,
    FileTypeError,
    FileDownloadError,
    EncryptionError,
    IntegrityError,
    EnvelopeError,
    TruncatedEnvelopeError,
    TransferError
)

from .logging import (
    setup_logging,
    get_logger
)

__all__ = [
    # Configuration
    "EncryptionAlgorithm",
    "LocalStorageSettings",
    "S3StorageSettings",
    "TempFileSettings",
    "LoggingSettings",
    "Settings",
    "get_settings",

    # Logging
    "setup_logging",
    "get_logger",

    # Exceptions
    "StorageManagerError",
    "ConfigurationError",
    "MisconfiguredCodecError",
    "StorageError",
    "InvalidPathError",
    "FileDoesNotExistError",
    "FileTypeError",
    "FileDownloadError",
    "EncryptionError",
    "IntegrityError",
    "EnvelopeError",
    "TruncatedEnvelopeError",
    "TransferError"
]
