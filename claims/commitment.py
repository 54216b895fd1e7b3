"""
Purchase Commitments

Purchase-side generation of the hiding commitment that is registered with
the settlement ledger when a policy is bought. The opening (salt, order
hash, invoice fields, tier) stays with the buyer and is needed later to
prepare the claim witness.
"""

from __future__ import annotations

import json
import logging
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from core.crypto.field import (
    FIELD_MODULUS,
    canonicalize_product_id,
    product_hash,
    text_to_field,
    to_field_hex,
)
from core.errors import PersistenceException

from .tiers import TierTable
from .validator import build_commitment, classify_tier

logger = logging.getLogger(__name__)


class PurchaseDetails(BaseModel):
    """Invoice data for the protected purchase."""

    model_config = ConfigDict(extra="forbid")

    order_number: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
    invoice_price: int = Field(..., ge=0, description="6-decimal units")
    invoice_date: int = Field(..., ge=0, description="Unix seconds")


class CommitmentRecord(BaseModel):
    """A commitment plus its opening. Keep private."""

    model_config = ConfigDict(extra="forbid")

    commitment: int
    product_id: str
    product_hash: int
    order_hash: int
    invoice_price: int
    invoice_date: int
    salt: int
    selected_tier: int
    created_at: str

    @property
    def commitment_hex(self) -> str:
        return to_field_hex(self.commitment)


def random_salt() -> int:
    """Uniformly random non-zero field element."""
    return secrets.randbelow(FIELD_MODULUS - 1) + 1


def generate_commitment(
    details: PurchaseDetails,
    table: TierTable,
    salt: Optional[int] = None,
) -> CommitmentRecord:
    """
    Commit to a purchase.

    The tier is derived from the invoice price so the commitment can later
    satisfy the premium check.

    Raises:
        PriceOutOfRangeException: price outside the tier table
    """
    tier = classify_tier(details.invoice_price, table)
    order_hash = text_to_field(details.order_number)
    ph = product_hash(details.product_id)
    salt = random_salt() if salt is None else salt

    commitment = build_commitment(
        order_hash, details.invoice_price, details.invoice_date, ph, salt, tier
    )
    logger.info(
        f"Commitment generated for product {canonicalize_product_id(details.product_id)} "
        f"(tier {tier})"
    )
    return CommitmentRecord(
        commitment=commitment,
        product_id=canonicalize_product_id(details.product_id),
        product_hash=ph,
        order_hash=order_hash,
        invoice_price=details.invoice_price,
        invoice_date=details.invoice_date,
        salt=salt,
        selected_tier=tier,
        created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )


def save_commitment(record: CommitmentRecord, path: str | Path) -> None:
    """Write a commitment record as JSON. Field elements become strings."""
    path = Path(path)
    data = record.model_dump()
    for key in ("commitment", "product_hash", "order_hash", "salt"):
        data[key] = str(data[key])
    try:
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    except OSError as e:
        raise PersistenceException(f"Failed to write commitment to {path}: {e}") from e


def load_commitment(path: str | Path) -> CommitmentRecord:
    """Read a record written by save_commitment()."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return CommitmentRecord.model_validate(data)


__all__ = [
    "PurchaseDetails",
    "CommitmentRecord",
    "random_salt",
    "generate_commitment",
    "save_commitment",
    "load_commitment",
]
