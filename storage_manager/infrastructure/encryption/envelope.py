"""
Fixed-offset encryption trailer appended after the ciphertext of a stored file.

Layout on disk::

    [ ciphertext ][ auth tag ][ iv ][ marker ]

Field lengths are fixed per codec, so the trailer is always the last
``EnvelopeLayout.length`` bytes of the file and is located without scanning.
"""

from dataclasses import dataclass

from ...core.exceptions import EnvelopeError, TruncatedEnvelopeError


DEFAULT_MARKER = b"ENCRYPTED"


@dataclass(frozen=True)
class EnvelopeTrailer:
    """Decoded trailer fields."""
    auth_tag: bytes
    iv: bytes
    marker: str


@dataclass(frozen=True)
class EnvelopeLayout:
    """Field lengths and marker of a codec's trailer."""
    auth_tag_length: int
    iv_length: int
    marker: bytes = DEFAULT_MARKER

    @property
    def marker_length(self) -> int:
        return len(self.marker)

    @property
    def length(self) -> int:
        """Total trailer length in bytes."""
        return self.auth_tag_length + self.iv_length + self.marker_length

    def encode(self, auth_tag: bytes, iv: bytes) -> bytes:
        """Concatenate ``auth_tag || iv || marker``."""
        if len(auth_tag) != self.auth_tag_length:
            raise EnvelopeError(
                f"Auth tag must be {self.auth_tag_length} bytes, got {len(auth_tag)}"
            )
        if len(iv) != self.iv_length:
            raise EnvelopeError(f"IV must be {self.iv_length} bytes, got {len(iv)}")
        return bytes(auth_tag) + bytes(iv) + self.marker

    def decode(self, data: bytes) -> EnvelopeTrailer:
        """Split a trailer into its fields using the fixed offsets."""
        if len(data) < self.length:
            raise TruncatedEnvelopeError(self.length, len(data))
        if len(data) > self.length:
            raise EnvelopeError(
                f"Encryption trailer too long: expected {self.length} bytes, got {len(data)}"
            )

        iv_start = self.auth_tag_length
        marker_start = iv_start + self.iv_length
        return EnvelopeTrailer(
            auth_tag=bytes(data[:iv_start]),
            iv=bytes(data[iv_start:marker_start]),
            marker=bytes(data[marker_start:]).decode("utf-8", errors="replace"),
        )

    def has_envelope(self, marker: str) -> bool:
        """True iff ``marker`` equals the configured marker text."""
        return marker == self.marker.decode("utf-8")

    def trailer_start(self, file_size: int) -> int:
        """Offset of the first trailer byte, clamped to zero."""
        return max(0, file_size - self.length)

    def ciphertext_end(self, file_size: int) -> int:
        """Exclusive end offset of the ciphertext region, clamped to zero."""
        return max(0, file_size - self.length)
