"""
Module 03 - Blob Codec

Field-safe chunk packing for publishing oracle snapshots.
"""

from .codec import (
    BLOB_VERSION,
    DEFAULT_CHUNK_COUNT,
    DEFAULT_CHUNK_WIDTH,
    BlobCodec,
    versioned_hash,
)

__all__ = [
    "BLOB_VERSION",
    "DEFAULT_CHUNK_COUNT",
    "DEFAULT_CHUNK_WIDTH",
    "BlobCodec",
    "versioned_hash",
]
