"""
Blob Publication

Publishes the packed oracle snapshot so third parties can rebuild the tree
and check the on-ledger root. Publishers receive already-packed chunks; the
encoding is owned by core.blob.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from core.blob import versioned_hash
from core.crypto.field import to_field_hex
from core.crypto.hashing import to_hex
from core.errors import ExternalUnavailableException
from core.http import HttpClient, HttpError

logger = logging.getLogger(__name__)


class PublishReceipt(BaseModel):
    """Result of a blob publication."""

    model_config = ConfigDict(extra="forbid")

    versioned_hash: str = Field(..., description="0x-prefixed versioned blob hash")
    root: int
    chunk_count: int
    reference: Optional[str] = Field(default=None, description="Publisher-side id")


@runtime_checkable
class BlobPublisher(Protocol):
    """Protocol for data-availability publication."""

    def publish(self, chunks: Sequence[bytes], root: int) -> PublishReceipt:
        ...


class InMemoryBlobPublisher:
    """Keeps every published blob in a list."""

    def __init__(self) -> None:
        self.published: list[tuple[list[bytes], int, PublishReceipt]] = []

    def publish(self, chunks: Sequence[bytes], root: int) -> PublishReceipt:
        blob = b"".join(chunks)
        receipt = PublishReceipt(
            versioned_hash=to_hex(versioned_hash(blob)),
            root=root,
            chunk_count=len(chunks),
            reference=f"mem-blob-{len(self.published) + 1}",
        )
        self.published.append((list(chunks), root, receipt))
        logger.info(f"Blob {receipt.versioned_hash} published for root {root}")
        return receipt

    @property
    def latest(self) -> Optional[list[bytes]]:
        return self.published[-1][0] if self.published else None


class HttpBlobPublisher:
    """
    POSTs blobs to a publication endpoint as JSON:

        {"root": "0x..", "versionedHash": "0x..", "chunks": ["0x..", ...]}
    """

    SERVICE = "blob-publisher"

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        client: Optional[HttpClient] = None,
    ) -> None:
        self.url = url
        self.client = client or HttpClient(timeout=timeout)

    def publish(self, chunks: Sequence[bytes], root: int) -> PublishReceipt:
        vhash = to_hex(versioned_hash(b"".join(chunks)))
        payload = {
            "root": to_field_hex(root),
            "versionedHash": vhash,
            "chunks": [to_hex(c) for c in chunks],
        }
        try:
            response = self.client.post(self.url, json=payload)
        except HttpError as e:
            raise ExternalUnavailableException(
                f"Blob publication failed: {e}", service=self.SERVICE
            ) from e

        if not response.ok:
            raise ExternalUnavailableException(
                f"Blob publisher returned HTTP {response.status_code}",
                service=self.SERVICE,
                details={"status_code": response.status_code},
            )

        reference = None
        try:
            data = response.json()
        except ValueError:
            logger.debug("Blob publisher returned a non-JSON body")
        else:
            if isinstance(data, dict) and data.get("reference") is not None:
                reference = str(data["reference"])

        logger.info(f"Blob {vhash} published to {self.url}")
        return PublishReceipt(
            versioned_hash=vhash,
            root=root,
            chunk_count=len(chunks),
            reference=reference,
        )


__all__ = [
    "PublishReceipt",
    "BlobPublisher",
    "InMemoryBlobPublisher",
    "HttpBlobPublisher",
]
