"""
Unit tests for configuration.
"""

import base64

import pytest
from pydantic import ValidationError

from storage_manager.core.config import (
    EncryptionAlgorithm,
    LocalStorageSettings,
    LoggingSettings,
    S3StorageSettings,
    Settings,
)


class TestLocalStorageSettings:
    """Test cases for LocalStorageSettings."""

    def test_defaults(self):
        settings = LocalStorageSettings()

        assert settings.bucket == "uploads"
        assert settings.encryption_algorithm is None
        assert settings.key_bytes is None
        assert settings.delete_file_on_error is True

    def test_valid_encryption(self, encryption_key):
        settings = LocalStorageSettings(encryption_algorithm="aes-256-gcm", encryption_key=encryption_key)

        assert settings.encryption_algorithm is EncryptionAlgorithm.AES_256_GCM
        assert settings.key_bytes == base64.b64decode(encryption_key)
        assert encryption_key not in repr(settings)

    def test_algorithm_requires_key(self):
        with pytest.raises(ValidationError, match="encryption_key is required"):
            LocalStorageSettings(encryption_algorithm="chacha20-poly1305")

    @pytest.mark.parametrize("key", ["not base64!", base64.b64encode(b"short").decode()])
    def test_invalid_key(self, key):
        with pytest.raises(ValidationError):
            LocalStorageSettings(encryption_algorithm="chacha20-poly1305", encryption_key=key)

    def test_unknown_algorithm(self, encryption_key):
        with pytest.raises(ValidationError):
            LocalStorageSettings(encryption_algorithm="des", encryption_key=encryption_key)

    def test_frozen(self):
        settings = LocalStorageSettings()

        with pytest.raises(ValidationError):
            settings.bucket = "other"

    def test_from_environment(self, monkeypatch, encryption_key):
        monkeypatch.setenv("LOCAL_STORAGE_BUCKET", "media")
        monkeypatch.setenv("LOCAL_STORAGE_ENCRYPTION_ALGORITHM", "chacha20-poly1305")
        monkeypatch.setenv("LOCAL_STORAGE_ENCRYPTION_KEY", encryption_key)

        settings = LocalStorageSettings()

        assert settings.bucket == "media"
        assert settings.encryption_algorithm is EncryptionAlgorithm.CHACHA20_POLY1305


class TestOtherSettings:
    """Test cases for the remaining settings classes."""

    def test_s3_part_size_minimum(self):
        with pytest.raises(ValidationError):
            S3StorageSettings(bucket="b", part_size=1024)

    def test_logging_level_normalized(self):
        assert LoggingSettings(level="debug").level == "DEBUG"

        with pytest.raises(ValidationError):
            LoggingSettings(level="verbose")

    def test_settings_aggregate_concerns(self):
        settings = Settings()

        assert isinstance(settings.local, LocalStorageSettings)
        assert settings.logging.level == "DEBUG"
