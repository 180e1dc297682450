"""
Custom exception classes for the storage manager.
Provides specific error types for different failure scenarios.
"""

from typing import Optional, Dict, Any


class StorageManagerError(Exception):
    """Base exception for all storage manager errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(StorageManagerError):
    """Raised when there's a configuration error."""
    pass


class MisconfiguredCodecError(ConfigurationError):
    """Raised when an encryption operation is requested but no codec is configured."""

    def __init__(self, operation: str):
        super().__init__(
            f"Cannot {operation}: no encryption algorithm is configured",
            error_code="MISCONFIGURED_CODEC",
            details={"operation": operation},
        )


class StorageError(StorageManagerError):
    """Raised when file storage operations fail."""
    pass


class InvalidPathError(StorageError):
    """Raised when a resolved path escapes the storage root."""

    def __init__(self, path: str):
        super().__init__(
            f"Invalid path: {path}",
            error_code="INVALID_PATH",
            details={"path": path},
        )


class FileDoesNotExistError(StorageError):
    """Raised when a requested file does not exist or is not a regular file."""

    def __init__(self, path: str):
        super().__init__(
            f"File does not exist: {path}",
            error_code="FILE_NOT_FOUND",
            details={"path": path},
        )


class FileTypeError(StorageError):
    """Raised when the type of an uploaded file cannot be determined."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message or "Could not guess file type. File may be corrupted.",
            error_code="FILE_TYPE",
        )


class FileDownloadError(StorageError):
    """Raised when a remote source cannot be downloaded."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Could not download file", error_code="FILE_DOWNLOAD")


class EncryptionError(StorageManagerError):
    """Base class for encryption and envelope failures."""
    pass


class IntegrityError(EncryptionError):
    """Raised when the authentication tag does not match the ciphertext."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message or "Authentication tag mismatch: file is corrupted or was tampered with",
            error_code="INTEGRITY",
        )


class EnvelopeError(EncryptionError):
    """Raised when an encryption trailer cannot be encoded or decoded."""
    pass


class TruncatedEnvelopeError(EnvelopeError):
    """Raised when fewer bytes than the fixed trailer length could be read."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Encryption trailer truncated: expected {expected} bytes, got {actual}",
            error_code="TRUNCATED_ENVELOPE",
            details={"expected": expected, "actual": actual},
        )


class TransferError(StorageManagerError):
    """Raised when files cannot be transferred between two storages."""
    pass
