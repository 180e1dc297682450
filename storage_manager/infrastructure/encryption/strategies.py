"""
Pluggable encryption codecs.

A codec bundles the trailer layout of one AEAD algorithm with the two cipher
constructors. The storage layer only depends on the ``EncryptionStrategy``
protocol.
"""

import os
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from ...core.config import KEY_LENGTH, EncryptionAlgorithm
from ...core.exceptions import ConfigurationError
from .ciphers import (
    AesGcmDecryptor,
    AesGcmEncryptor,
    ChaCha20Poly1305Decryptor,
    ChaCha20Poly1305Encryptor,
    EncryptingCipher,
    StreamCipher,
)
from .envelope import EnvelopeLayout


@dataclass(frozen=True)
class EncryptionContext:
    """Nonce and encrypting cipher for one file."""
    iv: bytes
    cipher: EncryptingCipher


class EncryptionStrategy(Protocol):
    """Capability set every codec implements."""

    algorithm: EncryptionAlgorithm
    layout: EnvelopeLayout

    def create_encryption(self) -> EncryptionContext:
        ...

    def create_decryption(self, iv: bytes, auth_tag: bytes) -> StreamCipher:
        ...


def _validate_key(key: bytes) -> bytes:
    if len(key) != KEY_LENGTH:
        raise ConfigurationError(
            f"Encryption key must be {KEY_LENGTH} bytes, got {len(key)}",
            error_code="INVALID_KEY",
        )
    return bytes(key)


class ChaCha20Poly1305Strategy:
    """ChaCha20-Poly1305 with a 16 byte tag and a 12 byte nonce."""

    algorithm = EncryptionAlgorithm.CHACHA20_POLY1305
    layout = EnvelopeLayout(auth_tag_length=16, iv_length=12)

    def __init__(self, key: bytes):
        self._key = _validate_key(key)

    def create_encryption(self) -> EncryptionContext:
        iv = os.urandom(self.layout.iv_length)
        return EncryptionContext(iv=iv, cipher=ChaCha20Poly1305Encryptor(self._key, iv))

    def create_decryption(self, iv: bytes, auth_tag: bytes) -> StreamCipher:
        return ChaCha20Poly1305Decryptor(self._key, iv, auth_tag)


class AesGcmStrategy:
    """AES-256-GCM with a 16 byte tag and a 12 byte nonce."""

    algorithm = EncryptionAlgorithm.AES_256_GCM
    layout = EnvelopeLayout(auth_tag_length=16, iv_length=12)

    def __init__(self, key: bytes):
        self._key = _validate_key(key)

    def create_encryption(self) -> EncryptionContext:
        iv = os.urandom(self.layout.iv_length)
        return EncryptionContext(iv=iv, cipher=AesGcmEncryptor(self._key, iv))

    def create_decryption(self, iv: bytes, auth_tag: bytes) -> StreamCipher:
        return AesGcmDecryptor(self._key, iv, auth_tag)


STRATEGIES = {
    EncryptionAlgorithm.CHACHA20_POLY1305: ChaCha20Poly1305Strategy,
    EncryptionAlgorithm.AES_256_GCM: AesGcmStrategy,
}


def create_encryption_strategy(
    algorithm: Optional[Union[EncryptionAlgorithm, str]],
    key: Optional[bytes],
) -> Optional[EncryptionStrategy]:
    """
    Build the codec selected by configuration.

    Args:
        algorithm: Algorithm identifier; ``None`` disables encryption
        key: Raw pre-shared key

    Returns:
        Codec instance, or ``None`` when encryption is disabled
    """
    if algorithm is None:
        return None

    try:
        algorithm = EncryptionAlgorithm(algorithm)
    except ValueError as e:
        raise ConfigurationError(f"Unsupported encryption algorithm: {algorithm}") from e

    if key is None:
        raise ConfigurationError(f"Encryption algorithm '{algorithm.value}' requires a key")

    return STRATEGIES[algorithm](key)
