"""
Transparent at-rest encryption for locally stored files.

- Envelope trailer layout (auth tag, nonce, marker)
- Streaming AEAD ciphers (ChaCha20-Poly1305, AES-256-GCM)
- Codec strategies and the encryptor facade used by the storage layer
"""

from .envelope import EnvelopeLayout, EnvelopeTrailer, DEFAULT_MARKER
from .ciphers import StreamCipher, EncryptingCipher
from .strategies import (
    EncryptionContext,
    EncryptionStrategy,
    ChaCha20Poly1305Strategy,
    AesGcmStrategy,
    create_encryption_strategy
)
from .encryptor import FileEncryptor

__all__ = [
    "EnvelopeLayout",
    "EnvelopeTrailer",
    "DEFAULT_MARKER",
    "StreamCipher",
    "EncryptingCipher",
    "EncryptionContext",
    "EncryptionStrategy",
    "ChaCha20Poly1305Strategy",
    "AesGcmStrategy",
    "create_encryption_strategy",
    "FileEncryptor"
]
