"""
Ledger Collaborator Interface

The settlement ledger stores the authoritative price root that claims are
checked against, and settles claims. The oracle only ever needs three
operations; implementations live in ledger.memory and ledger.http.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from claims.witness import PublicSignals


class LedgerReceipt(BaseModel):
    """Result of a root write."""

    model_config = ConfigDict(extra="forbid")

    root: int = Field(..., ge=0)
    changed: bool = Field(..., description="False when the ledger already held this root")
    tx_id: str = Field(..., description="Ledger transaction reference")


class ClaimReceipt(BaseModel):
    """Result of a claim submission."""

    model_config = ConfigDict(extra="forbid")

    policy_id: int
    accepted: bool
    payout: int = Field(default=0, ge=0)
    tx_id: Optional[str] = None
    reason: Optional[str] = None


@runtime_checkable
class LedgerClient(Protocol):
    """
    Protocol for the settlement ledger.

    write_root must be idempotent: writing the current root again is a no-op
    that still returns a receipt, so callers may retry freely.
    """

    def read_root(self) -> int:
        ...

    def write_root(self, root: int) -> LedgerReceipt:
        ...

    def submit_claim(
        self,
        policy_id: int,
        proof: dict[str, Any],
        public_signals: PublicSignals,
    ) -> ClaimReceipt:
        ...


__all__ = [
    "LedgerReceipt",
    "ClaimReceipt",
    "LedgerClient",
]
