"""
Configuration management using Pydantic Settings.
Every storage instance receives its own immutable settings object.
"""

import base64
import binascii
import os
import tempfile
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


KEY_LENGTH = 32


class EncryptionAlgorithm(str, Enum):
    """Supported at-rest encryption algorithms."""

    CHACHA20_POLY1305 = "chacha20-poly1305"
    AES_256_GCM = "aes-256-gcm"


class LocalStorageSettings(BaseSettings):
    """Local filesystem storage configuration."""

    bucket: str = Field(default="uploads", description="Storage folder under the root path")
    root_path: str = Field(default_factory=os.getcwd, description="Root directory of the storage")
    encryption_algorithm: Optional[EncryptionAlgorithm] = Field(
        default=None, description="Encryption algorithm; unset disables encryption"
    )
    encryption_key: Optional[SecretStr] = Field(
        default=None, description="Base64 encoded 32 byte pre-shared key"
    )
    delete_file_on_error: bool = Field(
        default=True, description="Delete partially written files when an upload fails"
    )
    chunk_size: int = Field(default=64 * 1024, gt=0, description="Read chunk size in bytes")

    model_config = SettingsConfigDict(env_prefix="LOCAL_STORAGE_", frozen=True)

    @field_validator("encryption_key")
    @classmethod
    def validate_encryption_key(cls, v):
        if v is None:
            return v
        try:
            raw = base64.b64decode(v.get_secret_value(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("Encryption key must be valid base64") from e
        if len(raw) != KEY_LENGTH:
            raise ValueError(f"Encryption key must decode to {KEY_LENGTH} bytes, got {len(raw)}")
        return v

    @model_validator(mode="after")
    def validate_encryption(self):
        if self.encryption_algorithm is not None and self.encryption_key is None:
            raise ValueError("encryption_key is required when encryption_algorithm is set")
        return self

    @property
    def key_bytes(self) -> Optional[bytes]:
        """Decoded encryption key, if one is configured."""
        if self.encryption_key is None:
            return None
        return base64.b64decode(self.encryption_key.get_secret_value())


class S3StorageSettings(BaseSettings):
    """S3 compatible object storage configuration."""

    bucket: str = Field(description="Bucket name")
    region_name: Optional[str] = Field(default=None, description="AWS region")
    endpoint_url: Optional[str] = Field(default=None, description="Custom endpoint (MinIO, LocalStack)")
    aws_access_key_id: Optional[str] = Field(default=None, description="Access key id")
    aws_secret_access_key: Optional[SecretStr] = Field(default=None, description="Secret access key")
    part_size: int = Field(
        default=8 * 1024 * 1024,
        ge=5 * 1024 * 1024,
        description="Multipart upload part size in bytes",
    )
    chunk_size: int = Field(default=64 * 1024, gt=0, description="Download chunk size in bytes")

    model_config = SettingsConfigDict(env_prefix="S3_STORAGE_", frozen=True)


class TempFileSettings(BaseSettings):
    """Scratch area used for staged decryption."""

    directory: str = Field(
        default_factory=lambda: os.path.join(tempfile.gettempdir(), "storage-manager"),
        description="Directory for temporary files",
    )

    model_config = SettingsConfigDict(env_prefix="TEMP_FILES_", frozen=True)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format"
    )
    file_path: Optional[str] = Field(default=None, description="Log file path")
    max_file_size: int = Field(default=10_000_000, description="Max log file size in bytes")
    backup_count: int = Field(default=5, description="Number of backup log files")

    # Structured logging
    use_json: bool = Field(default=False, description="Use JSON logging format")

    model_config = SettingsConfigDict(env_prefix="LOGGING_")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"Logging level must be one of {allowed}")
        return v.upper()


class Settings(BaseSettings):
    """Main application settings."""

    local: LocalStorageSettings = Field(default_factory=LocalStorageSettings)
    temp_files: TempFileSettings = Field(default_factory=TempFileSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Application settings instance
    """
    return Settings()
