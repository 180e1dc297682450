"""
Storage construction and lifecycle management.
"""

from typing import Dict, List, Optional, Union

from ...core.config import LocalStorageSettings, S3StorageSettings, Settings
from ...core.exceptions import ConfigurationError
from ...core.logging import get_logger
from .base import StorageBackend
from .file_storage import LocalFileStorage
from .s3_storage import S3FileStorage
from .temp_files import TempFileManager

logger = get_logger(__name__)

StorageSettings = Union[LocalStorageSettings, S3StorageSettings]


class StorageFactory:
    """Builds storage backends from their settings objects."""

    @staticmethod
    def create(
        settings: StorageSettings,
        temp_files: Optional[TempFileManager] = None,
        **kwargs
    ) -> StorageBackend:
        """
        Create the backend matching the settings type.

        Args:
            settings: Local or S3 storage settings
            temp_files: Shared temp area for local storages
            **kwargs: Extra backend arguments (e.g. an S3 ``client``)

        Raises:
            ConfigurationError: If the settings type is not supported
        """
        if isinstance(settings, LocalStorageSettings):
            return LocalFileStorage(settings, temp_files=temp_files, **kwargs)
        if isinstance(settings, S3StorageSettings):
            return S3FileStorage(settings, **kwargs)
        raise ConfigurationError(
            f"Unsupported storage settings: {type(settings).__name__}",
            error_code="UNSUPPORTED_STORAGE",
        )


class StorageRegistry:
    """Named storages sharing one temp area."""

    def __init__(self, temp_files: TempFileManager):
        self.temp_files = temp_files
        self._storages: Dict[str, StorageBackend] = {}

    def _ensure_unique(self, name: str) -> None:
        if name in self._storages:
            raise ConfigurationError(
                f'Storage "{name}" is already registered',
                error_code="DUPLICATE_STORAGE",
                details={"name": name},
            )

    def register(self, name: str, storage: StorageBackend) -> StorageBackend:
        self._ensure_unique(name)
        self._storages[name] = storage
        logger.info(f'Registered storage "{name}"', backend=type(storage).__name__, bucket=storage.bucket)
        return storage

    def add(self, name: str, settings: StorageSettings, **kwargs) -> StorageBackend:
        """Create a storage from settings and register it under ``name``."""
        self._ensure_unique(name)
        return self.register(name, StorageFactory.create(settings, temp_files=self.temp_files, **kwargs))

    def get(self, name: str) -> StorageBackend:
        try:
            return self._storages[name]
        except KeyError:
            raise ConfigurationError(
                f'Storage "{name}" is not registered',
                error_code="UNKNOWN_STORAGE",
                details={"name": name},
            ) from None

    @property
    def names(self) -> List[str]:
        return list(self._storages)

    async def init(self) -> None:
        """Prepare shared resources; call once at application startup."""
        await self.temp_files.init()

    async def shutdown(self) -> None:
        """Release shared resources; call once at application shutdown."""
        await self.temp_files.shutdown()
        logger.info("Storage registry shut down")


# Global storage registry instance
_registry: Optional[StorageRegistry] = None


def initialize_storages(settings: Settings) -> StorageRegistry:
    """
    Initialize the global storage registry with the configured local storage.

    Args:
        settings: Application settings

    Returns:
        Storage registry instance
    """
    global _registry
    _registry = StorageRegistry(TempFileManager(settings.temp_files.directory))
    _registry.add("local", settings.local)
    return _registry


def get_storage_registry() -> StorageRegistry:
    """
    Get the global storage registry.

    Raises:
        ConfigurationError: If the registry is not initialized
    """
    if _registry is None:
        raise ConfigurationError("Storage registry not initialized. Call initialize_storages() first.")
    return _registry
