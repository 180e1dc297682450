"""
Incremental AEAD ciphers used as stream transforms.

Each cipher consumes data chunk by chunk through ``update`` and must be ended
with either ``finalize`` (success) or ``close`` (abort). Encrypting ciphers
expose the authentication tag once finalized; decrypting ciphers verify the
tag in ``finalize`` and raise ``IntegrityError`` on mismatch.
"""

import struct
from abc import ABC, abstractmethod
from typing import Optional

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.poly1305 import Poly1305

from ...core.exceptions import EncryptionError, IntegrityError


class StreamCipher(ABC):
    """Base class for a one-shot streaming cipher."""

    def __init__(self):
        self._finalized = False
        self._closed = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def closed(self) -> bool:
        return self._closed

    def update(self, data: bytes) -> bytes:
        self._ensure_open()
        return self._update(data)

    def finalize(self) -> bytes:
        self._ensure_open()
        try:
            return self._finalize()
        finally:
            self._finalized = True
            self._closed = True
            self._release()

    def close(self) -> None:
        """Dispose of the cipher without producing or verifying a tag."""
        if not self._closed:
            self._closed = True
            self._release()

    def _ensure_open(self) -> None:
        if self._closed:
            raise EncryptionError("Cipher is already finalized or closed")

    @abstractmethod
    def _update(self, data: bytes) -> bytes:
        ...

    @abstractmethod
    def _finalize(self) -> bytes:
        ...

    def _release(self) -> None:
        pass


class EncryptingCipher(StreamCipher):
    """Encrypting cipher producing an authentication tag."""

    def __init__(self):
        super().__init__()
        self._tag: Optional[bytes] = None

    @property
    def tag(self) -> bytes:
        if self._tag is None:
            raise EncryptionError("Authentication tag is only available after finalize()")
        return self._tag


class AesGcmEncryptor(EncryptingCipher):
    """AES-GCM encryption backed by a ``cryptography`` cipher context."""

    def __init__(self, key: bytes, iv: bytes):
        super().__init__()
        self._context = Cipher(algorithms.AES(key), modes.GCM(iv)).encryptor()

    def _update(self, data: bytes) -> bytes:
        return self._context.update(data)

    def _finalize(self) -> bytes:
        tail = self._context.finalize()
        self._tag = self._context.tag
        return tail

    def _release(self) -> None:
        self._context = None


class AesGcmDecryptor(StreamCipher):
    """AES-GCM decryption verifying ``auth_tag`` on finalize."""

    def __init__(self, key: bytes, iv: bytes, auth_tag: bytes):
        super().__init__()
        self._context = Cipher(algorithms.AES(key), modes.GCM(iv, auth_tag)).decryptor()

    def _update(self, data: bytes) -> bytes:
        return self._context.update(data)

    def _finalize(self) -> bytes:
        try:
            return self._context.finalize()
        except InvalidTag as e:
            raise IntegrityError() from e

    def _release(self) -> None:
        self._context = None


def _chacha20(key: bytes, nonce: bytes, counter: int):
    # cryptography takes a 16 byte nonce: 32-bit little endian counter || 96-bit nonce
    full_nonce = struct.pack("<I", counter) + nonce
    return Cipher(algorithms.ChaCha20(key, full_nonce), mode=None).encryptor()


class _ChaCha20Poly1305Base(StreamCipher):
    """RFC 8439 AEAD composition without associated data."""

    def __init__(self, key: bytes, nonce: bytes):
        super().__init__()
        one_time_key = _chacha20(key, nonce, 0).update(bytes(32))
        self._mac = Poly1305(one_time_key)
        self._keystream = _chacha20(key, nonce, 1)
        self._ciphertext_length = 0

    def _authenticate(self, ciphertext: bytes) -> None:
        self._mac.update(ciphertext)
        self._ciphertext_length += len(ciphertext)

    def _authenticate_lengths(self):
        padding = -self._ciphertext_length % 16
        if padding:
            self._mac.update(bytes(padding))
        self._mac.update(struct.pack("<QQ", 0, self._ciphertext_length))

    def _release(self) -> None:
        self._mac = None
        self._keystream = None


class ChaCha20Poly1305Encryptor(_ChaCha20Poly1305Base, EncryptingCipher):
    """Streaming ChaCha20-Poly1305 encryption."""

    def _update(self, data: bytes) -> bytes:
        ciphertext = self._keystream.update(data)
        self._authenticate(ciphertext)
        return ciphertext

    def _finalize(self) -> bytes:
        self._authenticate_lengths()
        self._tag = self._mac.finalize()
        return b""


class ChaCha20Poly1305Decryptor(_ChaCha20Poly1305Base):
    """Streaming ChaCha20-Poly1305 decryption verifying ``auth_tag`` on finalize."""

    def __init__(self, key: bytes, nonce: bytes, auth_tag: bytes):
        super().__init__(key, nonce)
        self._expected_tag = auth_tag

    def _update(self, data: bytes) -> bytes:
        self._authenticate(data)
        return self._keystream.update(data)

    def _finalize(self) -> bytes:
        self._authenticate_lengths()
        try:
            self._mac.verify(self._expected_tag)
        except InvalidSignature as e:
            raise IntegrityError() from e
        return b""
