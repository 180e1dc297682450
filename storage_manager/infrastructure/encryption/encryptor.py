"""
Encryptor facade used by the storage layer.

Holds at most one codec. Without a codec the storage behaves as plain
pass-through storage and every encryption operation raises
``MisconfiguredCodecError``.
"""

from typing import Any, AsyncIterable, Optional

from ...core.exceptions import ConfigurationError, MisconfiguredCodecError
from ...core.logging import get_logger
from .ciphers import StreamCipher
from .envelope import EnvelopeTrailer
from .strategies import EncryptionContext, EncryptionStrategy

logger = get_logger(__name__)


class FileEncryptor:
    """Uniform encryption surface over an optional codec."""

    def __init__(self, strategy: Optional[EncryptionStrategy] = None):
        self._strategy: Optional[EncryptionStrategy] = None
        if strategy is not None:
            self.set_strategy(strategy)

    def set_strategy(self, strategy: EncryptionStrategy) -> None:
        """Install the codec. It can only be set once."""
        if self._strategy is not None:
            raise ConfigurationError("Encryption strategy is already configured")
        self._strategy = strategy
        logger.debug(f"Encryption enabled with {strategy.algorithm.value}")

    @property
    def strategy(self) -> EncryptionStrategy:
        return self._require("access the encryption strategy")

    @property
    def trailer_length(self) -> int:
        return self._require("compute the trailer length").layout.length

    def is_encryption_enabled(self) -> bool:
        return self._strategy is not None

    def create_encryption(self) -> EncryptionContext:
        return self._require("create an encryption cipher").create_encryption()

    def create_decryption(self, iv: bytes, auth_tag: bytes) -> StreamCipher:
        return self._require("create a decryption cipher").create_decryption(iv, auth_tag)

    async def get_encryption_vitals(self, stream: AsyncIterable[bytes]) -> EnvelopeTrailer:
        """
        Read and decode the trailer from the tail slice of a file.

        The stream is drained completely before decoding; fewer bytes than
        the trailer length raise ``TruncatedEnvelopeError``.
        """
        layout = self._require("read encryption vitals").layout

        buffer = bytearray()
        try:
            async for chunk in stream:
                buffer.extend(chunk)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        return layout.decode(bytes(buffer))

    async def append_encryption_vitals(self, writer: Any, auth_tag: bytes, iv: bytes) -> None:
        """
        Write the encoded trailer and close the writer.

        ``writer`` is an async file handle (``aiofiles``); this returns only
        after the data has been flushed and the handle closed.
        """
        layout = self._require("append encryption vitals").layout
        try:
            await writer.write(layout.encode(auth_tag, iv))
            await writer.flush()
        finally:
            await writer.close()

    def is_encrypted(self, marker: str) -> bool:
        if self._strategy is None:
            return False
        return self._strategy.layout.has_envelope(marker)

    def encryption_vitals_start(self, file_size: int) -> int:
        return self._require("locate encryption vitals").layout.trailer_start(file_size)

    def encrypted_file_end(self, file_size: int) -> int:
        return self._require("locate the ciphertext").layout.ciphertext_end(file_size)

    def _require(self, operation: str) -> EncryptionStrategy:
        if self._strategy is None:
            raise MisconfiguredCodecError(operation)
        return self._strategy
