"""
Module 03 - Blob Codec
Packs arbitrary bytes into field-safe fixed-width chunks for data
availability publication, and unpacks them again.

Layout (Hard Contract):
- A blob is exactly `chunk_count` chunks of `chunk_width` bytes each, so
  the default 4096 x 32 blob is 131072 bytes.
- Byte 0 of every chunk is 0x00, so each chunk read as a big-endian
  integer is strictly below any field modulus wider than
  8 * (chunk_width - 1) bits.
- Chunk 0 is the frame header: the payload length as an unsigned
  big-endian integer in its usable bytes.
- Chunks 1..chunk_count-1 carry the payload, `chunk_width - 1` bytes each,
  zero-filled after the end of the payload.

Because the length is framed explicitly, payloads may contain zero bytes.

Capacity: (chunk_count - 1) * (chunk_width - 1) payload bytes.
"""
from __future__ import annotations

from typing import Any, Sequence

from core.canonical import dumps_canonical, loads_canonical
from core.crypto.hashing import sha256
from core.errors import BlobFormatException, PayloadTooLargeException


# EIP-4844 sized defaults: 4096 chunks of 32 bytes, header included
DEFAULT_CHUNK_COUNT = 4096
DEFAULT_CHUNK_WIDTH = 32

BLOB_VERSION = 0x01


class BlobCodec:
    """
    Length-framed, field-safe chunk codec.

    Example:
        >>> codec = BlobCodec(chunk_count=3, chunk_width=4)
        >>> codec.capacity
        6
        >>> codec.unpack(codec.pack(b"ab\\x00c"))
        b'ab\\x00c'
    """

    def __init__(
        self,
        chunk_count: int = DEFAULT_CHUNK_COUNT,
        chunk_width: int = DEFAULT_CHUNK_WIDTH,
    ) -> None:
        if chunk_count < 2:
            raise ValueError(f"chunk_count must be at least 2 (header plus data), got {chunk_count}")
        if chunk_width < 2:
            raise ValueError(f"chunk_width must be at least 2, got {chunk_width}")
        self.chunk_count = chunk_count
        self.chunk_width = chunk_width
        if self.capacity >= 1 << (8 * self.usable_width):
            raise ValueError(
                f"Header chunk of width {chunk_width} cannot frame a capacity of {self.capacity}"
            )

    @property
    def usable_width(self) -> int:
        """Payload bytes per chunk (the MSB is reserved)."""
        return self.chunk_width - 1

    @property
    def capacity(self) -> int:
        """Maximum payload size in bytes."""
        return (self.chunk_count - 1) * self.usable_width

    def pack(self, payload: bytes) -> list[bytes]:
        """
        Pack payload into chunk_count chunks (header first).

        Raises:
            PayloadTooLargeException: payload longer than capacity
        """
        if len(payload) > self.capacity:
            raise PayloadTooLargeException(len(payload), self.capacity)

        chunks = [self._header(len(payload))]
        width = self.usable_width
        for i in range(self.chunk_count - 1):
            piece = payload[i * width:(i + 1) * width]
            chunks.append(b"\x00" + piece.ljust(width, b"\x00"))
        return chunks

    def unpack(self, chunks: Sequence[bytes]) -> bytes:
        """
        Recover the payload from packed chunks.

        Raises:
            BlobFormatException: wrong chunk count or width, non-zero MSB,
                or a framed length beyond capacity
        """
        if len(chunks) != self.chunk_count:
            raise BlobFormatException(
                f"Expected {self.chunk_count} chunks, got {len(chunks)}",
                details={"expected": self.chunk_count, "actual": len(chunks)},
            )

        for i, chunk in enumerate(chunks):
            if len(chunk) != self.chunk_width:
                raise BlobFormatException(
                    f"Chunk {i} has width {len(chunk)}, expected {self.chunk_width}",
                    details={"chunk": i},
                )
            if chunk[0] != 0:
                raise BlobFormatException(
                    f"Chunk {i} has a non-zero most significant byte",
                    details={"chunk": i},
                )

        length = int.from_bytes(chunks[0][1:], "big")
        if length > self.capacity:
            raise BlobFormatException(
                f"Framed length {length} exceeds capacity {self.capacity}",
                details={"length": length, "capacity": self.capacity},
            )

        data = b"".join(chunk[1:] for chunk in chunks[1:])
        return data[:length]

    def to_blob(self, chunks: Sequence[bytes]) -> bytes:
        """Concatenate chunks into one contiguous blob."""
        return b"".join(chunks)

    def from_blob(self, blob: bytes) -> list[bytes]:
        """Split a contiguous blob back into chunks."""
        expected = self.chunk_count * self.chunk_width
        if len(blob) != expected:
            raise BlobFormatException(
                f"Blob is {len(blob)} bytes, expected {expected}",
                details={"expected": expected, "actual": len(blob)},
            )
        return [
            blob[i:i + self.chunk_width]
            for i in range(0, len(blob), self.chunk_width)
        ]

    def encode_json(self, obj: Any) -> list[bytes]:
        """Canonical-JSON encode obj and pack it."""
        return self.pack(dumps_canonical(obj).encode("utf-8"))

    def decode_json(self, chunks: Sequence[bytes]) -> Any:
        """Unpack chunks and parse the payload as JSON."""
        payload = self.unpack(chunks)
        try:
            return loads_canonical(payload.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise BlobFormatException(f"Invalid JSON data in blob: {e}") from e

    def _header(self, length: int) -> bytes:
        return b"\x00" + length.to_bytes(self.usable_width, "big")


def versioned_hash(blob: bytes, version: int = BLOB_VERSION) -> bytes:
    """Version byte followed by the last 31 bytes of sha256(blob)."""
    return bytes([version]) + sha256(blob)[1:]


__all__ = [
    "DEFAULT_CHUNK_COUNT",
    "DEFAULT_CHUNK_WIDTH",
    "BLOB_VERSION",
    "BlobCodec",
    "versioned_hash",
]
