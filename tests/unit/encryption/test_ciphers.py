"""
Unit tests for streaming AEAD ciphers and codecs.
"""

import os

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from storage_manager.core.config import EncryptionAlgorithm
from storage_manager.core.exceptions import ConfigurationError, EncryptionError, IntegrityError
from storage_manager.infrastructure.encryption.strategies import (
    AesGcmStrategy,
    ChaCha20Poly1305Strategy,
    create_encryption_strategy,
)

KEY = bytes(range(32))

ONE_SHOT_AEADS = {
    ChaCha20Poly1305Strategy: ChaCha20Poly1305,
    AesGcmStrategy: AESGCM,
}


def encrypt_in_chunks(strategy, data: bytes, chunk_size: int = 7):
    context = strategy.create_encryption()
    ciphertext = b"".join(
        context.cipher.update(data[i:i + chunk_size]) for i in range(0, len(data), chunk_size)
    )
    ciphertext += context.cipher.finalize()
    return context.iv, ciphertext, context.cipher.tag


def decrypt_in_chunks(strategy, iv: bytes, ciphertext: bytes, tag: bytes, chunk_size: int = 5):
    decipher = strategy.create_decryption(iv, tag)
    plaintext = b"".join(
        decipher.update(ciphertext[i:i + chunk_size]) for i in range(0, len(ciphertext), chunk_size)
    )
    return plaintext + decipher.finalize()


@pytest.fixture(params=[ChaCha20Poly1305Strategy, AesGcmStrategy], ids=["chacha20", "aes-gcm"])
def strategy_class(request):
    return request.param


class TestStreamingCiphers:
    """Test cases for the streaming cipher implementations."""

    @pytest.mark.parametrize("data", [b"", b"hello world", os.urandom(1000)])
    def test_round_trip(self, strategy_class, data):
        strategy = strategy_class(KEY)

        iv, ciphertext, tag = encrypt_in_chunks(strategy, data)

        assert len(ciphertext) == len(data)
        assert len(iv) == 12
        assert len(tag) == 16
        assert decrypt_in_chunks(strategy, iv, ciphertext, tag) == data

    def test_matches_one_shot_aead(self, strategy_class):
        """Chunked output equals the standard AEAD construction without AAD."""
        data = os.urandom(333)
        strategy = strategy_class(KEY)

        iv, ciphertext, tag = encrypt_in_chunks(strategy, data, chunk_size=64)

        expected = ONE_SHOT_AEADS[strategy_class](KEY).encrypt(iv, data, None)
        assert ciphertext + tag == expected

    def test_flipped_ciphertext_bit_fails(self, strategy_class):
        strategy = strategy_class(KEY)
        iv, ciphertext, tag = encrypt_in_chunks(strategy, b"attack at dawn")
        tampered = bytes([ciphertext[0] ^ 0x01]) + ciphertext[1:]

        with pytest.raises(IntegrityError):
            decrypt_in_chunks(strategy, iv, tampered, tag)

    def test_wrong_tag_fails(self, strategy_class):
        strategy = strategy_class(KEY)
        iv, ciphertext, tag = encrypt_in_chunks(strategy, b"attack at dawn")

        with pytest.raises(IntegrityError):
            decrypt_in_chunks(strategy, iv, ciphertext, bytes(16))

    def test_wrong_key_fails(self, strategy_class):
        iv, ciphertext, tag = encrypt_in_chunks(strategy_class(KEY), b"attack at dawn")

        with pytest.raises(IntegrityError):
            decrypt_in_chunks(strategy_class(os.urandom(32)), iv, ciphertext, tag)

    def test_tag_unavailable_before_finalize(self, strategy_class):
        context = strategy_class(KEY).create_encryption()
        context.cipher.update(b"data")

        with pytest.raises(EncryptionError):
            context.cipher.tag

    def test_closed_cipher_rejects_input(self, strategy_class):
        context = strategy_class(KEY).create_encryption()
        context.cipher.close()
        context.cipher.close()

        assert context.cipher.closed
        assert not context.cipher.finalized
        with pytest.raises(EncryptionError):
            context.cipher.update(b"data")

    def test_finalize_only_once(self, strategy_class):
        context = strategy_class(KEY).create_encryption()
        context.cipher.finalize()

        assert context.cipher.finalized
        with pytest.raises(EncryptionError):
            context.cipher.finalize()

    def test_nonces_are_unique(self, strategy_class):
        strategy = strategy_class(KEY)

        nonces = {strategy.create_encryption().iv for _ in range(10_000)}

        assert len(nonces) == 10_000


class TestCreateEncryptionStrategy:
    """Test cases for codec selection."""

    def test_disabled(self):
        assert create_encryption_strategy(None, None) is None

    @pytest.mark.parametrize("algorithm, expected", [
        ("chacha20-poly1305", ChaCha20Poly1305Strategy),
        (EncryptionAlgorithm.AES_256_GCM, AesGcmStrategy),
    ])
    def test_selects_codec(self, algorithm, expected):
        strategy = create_encryption_strategy(algorithm, KEY)

        assert isinstance(strategy, expected)
        assert strategy.layout.length == 37

    def test_unknown_algorithm(self):
        with pytest.raises(ConfigurationError, match="Unsupported"):
            create_encryption_strategy("rot13", KEY)

    def test_missing_key(self):
        with pytest.raises(ConfigurationError, match="requires a key"):
            create_encryption_strategy("aes-256-gcm", None)

    def test_short_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            create_encryption_strategy("chacha20-poly1305", b"short")

        assert exc_info.value.error_code == "INVALID_KEY"
