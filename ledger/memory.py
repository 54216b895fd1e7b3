"""
In-Memory Settlement Ledger

Reference settlement runtime used for development and tests. It keeps the
price root, a policy registry and a payout log, and settles claims by
re-deriving every claim predicate from the public signals and its own
policy record instead of trusting the prover's flags.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from claims.prover import DevelopmentProver, ProvingBackend, proof_root
from claims.tiers import TierTable
from claims.validator import (
    classify_tier,
    dynamic_factor,
    expected_premium,
    is_valid_premium,
    price_drop,
)
from claims.witness import PolicyTerms, PublicSignals
from core.crypto.field import ZERO, ensure_field_element
from core.errors import (
    ExternalUnavailableException,
    PolicyAlreadyClaimedException,
    PolicyNotFoundException,
    PriceOutOfRangeException,
    ProofRejectedException,
)

from .base import ClaimReceipt, LedgerReceipt

logger = logging.getLogger(__name__)


class Policy(BaseModel):
    """A purchased policy. `claimed` flips at most once."""

    model_config = ConfigDict(extra="forbid")

    policy_id: int
    commitment: int
    purchase_timestamp: int
    paid_premium: int
    purchase_count: int = Field(..., description="Policies sold before this one")
    claimed: bool = False
    payout: int = 0

    def terms(self) -> PolicyTerms:
        return PolicyTerms(
            policy_id=self.policy_id,
            commitment=self.commitment,
            purchase_timestamp=self.purchase_timestamp,
            paid_premium=self.paid_premium,
            purchase_count=self.purchase_count,
        )


class InMemoryLedger:
    """
    Settlement ledger held in process memory.

    Set `available = False` to simulate an outage: root reads and writes
    then raise ExternalUnavailableException.

    Usage:
        ledger = InMemoryLedger(prover=DevelopmentProver(depth=4))
        ledger.write_root(oracle.root)
        policy = ledger.purchase_policy(record.commitment, ledger.quote(2), now)
    """

    def __init__(
        self,
        prover: Optional[ProvingBackend] = None,
        table: Optional[TierTable] = None,
        initial_root: int = ZERO,
        depth: int = 4,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.table = table or TierTable.default()
        self.prover = prover or DevelopmentProver(depth=depth, table=self.table)
        self.available = True
        self._clock = clock
        self._root = initial_root
        self._tx_counter = 0
        self._policies: dict[int, Policy] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Root registry
    # ------------------------------------------------------------------

    def read_root(self) -> int:
        self._check_available()
        return self._root

    def write_root(self, root: int) -> LedgerReceipt:
        self._check_available()
        ensure_field_element(root, "root")
        with self._lock:
            changed = root != self._root
            self._root = root
            tx_id = self._next_tx()
        if changed:
            logger.info(f"Ledger root updated to {root} ({tx_id})")
        return LedgerReceipt(root=root, changed=changed, tx_id=tx_id)

    # ------------------------------------------------------------------
    # Policies
    # ------------------------------------------------------------------

    @property
    def total_sold(self) -> int:
        return len(self._policies)

    def quote(self, tier_id: int) -> int:
        """Premium for a tier at the current dynamic factor."""
        return expected_premium(tier_id, dynamic_factor(self.total_sold), self.table)

    def purchase_policy(
        self,
        commitment: int,
        paid_premium: int,
        purchase_timestamp: Optional[int] = None,
    ) -> Policy:
        """Register a policy against a purchase commitment."""
        ensure_field_element(commitment, "commitment")
        if paid_premium < 0:
            raise ValueError("paid_premium must be non-negative")
        with self._lock:
            policy_id = len(self._policies) + 1
            policy = Policy(
                policy_id=policy_id,
                commitment=commitment,
                purchase_timestamp=(
                    int(self._clock()) if purchase_timestamp is None else purchase_timestamp
                ),
                paid_premium=paid_premium,
                purchase_count=len(self._policies),
            )
            self._policies[policy_id] = policy
        logger.info(f"Policy {policy_id} purchased (premium={paid_premium})")
        return policy

    def get_policy(self, policy_id: int) -> Policy:
        try:
            return self._policies[policy_id]
        except KeyError:
            raise PolicyNotFoundException(policy_id) from None

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    def submit_claim(
        self,
        policy_id: int,
        proof: dict[str, Any],
        public_signals: PublicSignals,
    ) -> ClaimReceipt:
        """
        Settle a claim.

        Raises:
            PolicyNotFoundException: unknown policy
            PolicyAlreadyClaimedException: policy already paid out
            ProofRejectedException: proof does not verify, or its public
                signals do not match this policy or the current root
        """
        with self._lock:
            policy = self.get_policy(policy_id)
            if policy.claimed:
                raise PolicyAlreadyClaimedException(policy_id)

            if not self.prover.verify(proof, public_signals):
                raise ProofRejectedException()
            self._check_binding(policy, proof, public_signals)

            s = public_signals
            drop = price_drop(s.invoice_price, s.current_price)
            try:
                tier = classify_tier(s.invoice_price, self.table)
                premium_ok = is_valid_premium(
                    s.invoice_price, tier, s.paid_premium, s.purchase_count, self.table
                )
            except PriceOutOfRangeException:
                premium_ok = False
            claim_ok = bool(s.valid_claim) and s.invoice_price > s.current_price

            if bool(s.valid_premium) != premium_ok or s.price_difference != drop:
                raise ProofRejectedException("Public signals are inconsistent")

            if not (claim_ok and premium_ok):
                reason = "claim conditions not met" if not claim_ok else "premium mismatch"
                logger.info(f"Claim on policy {policy_id} rejected: {reason}")
                return ClaimReceipt(policy_id=policy_id, accepted=False, reason=reason)

            policy.claimed = True
            policy.payout = drop
            tx_id = self._next_tx()

        logger.info(f"Claim on policy {policy_id} paid {drop} ({tx_id})")
        return ClaimReceipt(policy_id=policy_id, accepted=True, payout=drop, tx_id=tx_id)

    def _check_binding(
        self,
        policy: Policy,
        proof: dict[str, Any],
        s: PublicSignals,
    ) -> None:
        mismatches = []
        if s.policy_id != policy.policy_id:
            mismatches.append("policy_id")
        if s.commitment != policy.commitment:
            mismatches.append("commitment")
        if s.policy_start_date != policy.purchase_timestamp:
            mismatches.append("policy_start_date")
        if s.paid_premium != policy.paid_premium:
            mismatches.append("paid_premium")
        if s.purchase_count != policy.purchase_count:
            mismatches.append("purchase_count")
        # A proof that does not name its root cannot be tied to the registry
        root = proof_root(proof)
        if root is None or root != self._root:
            mismatches.append("merkle_root")
        if mismatches:
            raise ProofRejectedException(
                f"Public signals do not match policy: {', '.join(mismatches)}"
            )

    def _check_available(self) -> None:
        if not self.available:
            raise ExternalUnavailableException("Ledger unavailable", service="ledger")

    def _next_tx(self) -> str:
        self._tx_counter += 1
        return f"mem-{self._tx_counter:06d}"


__all__ = [
    "Policy",
    "InMemoryLedger",
]
