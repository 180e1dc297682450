"""
Unit tests for the FileEncryptor facade.
"""

import pytest
from unittest.mock import AsyncMock

from storage_manager.core.exceptions import (
    ConfigurationError,
    MisconfiguredCodecError,
    TruncatedEnvelopeError,
)
from storage_manager.infrastructure.encryption import FileEncryptor
from storage_manager.infrastructure.encryption.strategies import AesGcmStrategy, ChaCha20Poly1305Strategy

KEY = b"k" * 32


async def chunks(*parts):
    for part in parts:
        yield part


class TestFileEncryptor:
    """Test cases for FileEncryptor."""

    @pytest.fixture
    def encryptor(self):
        return FileEncryptor(ChaCha20Poly1305Strategy(KEY))

    def test_disabled_by_default(self):
        encryptor = FileEncryptor()

        assert encryptor.is_encryption_enabled() is False
        assert encryptor.is_encrypted("ENCRYPTED") is False

    @pytest.mark.parametrize("operation", [
        lambda e: e.create_encryption(),
        lambda e: e.create_decryption(b"i" * 12, b"t" * 16),
        lambda e: e.encryption_vitals_start(100),
        lambda e: e.encrypted_file_end(100),
        lambda e: e.trailer_length,
    ])
    def test_operations_require_codec(self, operation):
        with pytest.raises(MisconfiguredCodecError) as exc_info:
            operation(FileEncryptor())

        assert exc_info.value.error_code == "MISCONFIGURED_CODEC"

    async def test_get_vitals_requires_codec(self):
        with pytest.raises(MisconfiguredCodecError):
            await FileEncryptor().get_encryption_vitals(chunks(b"x" * 37))

    def test_strategy_set_once(self, encryptor):
        with pytest.raises(ConfigurationError):
            encryptor.set_strategy(AesGcmStrategy(KEY))

    def test_offsets(self, encryptor):
        assert encryptor.trailer_length == 37
        assert encryptor.encryption_vitals_start(48) == 11
        assert encryptor.encrypted_file_end(48) == 11
        assert encryptor.encryption_vitals_start(20) == 0

    async def test_get_encryption_vitals_across_chunks(self, encryptor):
        tag, iv = b"T" * 16, b"I" * 12
        trailer = tag + iv + b"ENCRYPTED"

        vitals = await encryptor.get_encryption_vitals(chunks(trailer[:5], trailer[5:30], trailer[30:]))

        assert vitals.auth_tag == tag
        assert vitals.iv == iv
        assert encryptor.is_encrypted(vitals.marker)

    async def test_get_encryption_vitals_truncated(self, encryptor):
        with pytest.raises(TruncatedEnvelopeError):
            await encryptor.get_encryption_vitals(chunks(b"x" * 20))

    async def test_append_encryption_vitals_closes_writer(self, encryptor):
        writer = AsyncMock()

        await encryptor.append_encryption_vitals(writer, b"T" * 16, b"I" * 12)

        writer.write.assert_awaited_once_with(b"T" * 16 + b"I" * 12 + b"ENCRYPTED")
        writer.flush.assert_awaited_once()
        writer.close.assert_awaited_once()

    async def test_append_encryption_vitals_closes_writer_on_failure(self, encryptor):
        writer = AsyncMock()
        writer.write.side_effect = OSError("disk full")

        with pytest.raises(OSError):
            await encryptor.append_encryption_vitals(writer, b"T" * 16, b"I" * 12)

        writer.close.assert_awaited_once()
