"""
Claim Witness Preparation

Assembles and cross-checks the private and public inputs of a claim proof
from three sources: the buyer's commitment opening, the policy terms held
by settlement, and an oracle inclusion proof for the product's current
price.

Public-signal order is a fixed contract shared with every verifier:
    [validClaim, priceDifference, validPremium, commitment, invoicePrice,
     productHash, policyStartDate, currentPrice, policyId, paidPremium,
     purchaseCount]
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Sequence

from pydantic import BaseModel, ConfigDict, Field

from core.crypto.field import FieldHasher, field_hash, is_field_element
from core.errors import CommitmentMismatchException, WitnessException
from core.merkle import verify_proof
from oracle.models import ProductProof

from .commitment import CommitmentRecord
from .tiers import TierTable
from .validator import ClaimEvaluation, ClaimInputs, evaluate_claim, verify_commitment

logger = logging.getLogger(__name__)


class PublicSignals(BaseModel):
    """Public outputs of a claim proof, in contract order."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    valid_claim: int = Field(..., ge=0, le=1)
    price_difference: int = Field(..., ge=0)
    valid_premium: int = Field(..., ge=0, le=1)
    commitment: int = Field(..., ge=0)
    invoice_price: int = Field(..., ge=0)
    product_hash: int = Field(..., ge=0)
    policy_start_date: int = Field(..., ge=0)
    current_price: int = Field(..., ge=0)
    policy_id: int = Field(..., ge=0)
    paid_premium: int = Field(..., ge=0)
    purchase_count: int = Field(..., ge=0)

    ORDER: ClassVar[tuple[str, ...]] = (
        "valid_claim",
        "price_difference",
        "valid_premium",
        "commitment",
        "invoice_price",
        "product_hash",
        "policy_start_date",
        "current_price",
        "policy_id",
        "paid_premium",
        "purchase_count",
    )

    def to_list(self) -> list[int]:
        return [getattr(self, name) for name in self.ORDER]

    def to_strings(self) -> list[str]:
        """Decimal-string form used on the wire."""
        return [str(v) for v in self.to_list()]

    @classmethod
    def from_list(cls, values: Sequence[int | str]) -> "PublicSignals":
        """
        Raises:
            WitnessException: wrong length or non-integer entries
        """
        if len(values) != len(cls.ORDER):
            raise WitnessException(
                f"Expected {len(cls.ORDER)} public signals, got {len(values)}",
                details={"expected": len(cls.ORDER), "actual": len(values)},
            )
        try:
            ints = [int(v) for v in values]
        except (TypeError, ValueError) as e:
            raise WitnessException(f"Public signals must be integers: {e}") from e
        return cls(**dict(zip(cls.ORDER, ints)))


class PolicyTerms(BaseModel):
    """Policy data as recorded by settlement at purchase time."""

    model_config = ConfigDict(extra="forbid")

    policy_id: int = Field(..., ge=0)
    commitment: int = Field(..., ge=0)
    purchase_timestamp: int = Field(..., ge=0, description="Policy start, unix seconds")
    paid_premium: int = Field(..., ge=0)
    purchase_count: int = Field(..., ge=0, description="Policies sold before this one")


class ClaimWitness(BaseModel):
    """Complete, consistency-checked claim inputs."""

    model_config = ConfigDict(extra="forbid")

    # Private
    order_hash: int
    invoice_price: int
    invoice_date: int
    product_hash: int
    salt: int
    selected_tier: int
    current_price: int
    leaf: int
    siblings: list[int]
    flags: list[int]

    # Public
    commitment: int
    merkle_root: int
    policy_id: int
    policy_start_date: int
    paid_premium: int
    purchase_count: int

    def private_inputs(self) -> dict[str, Any]:
        return self.model_dump(include={
            "order_hash", "invoice_price", "invoice_date", "product_hash", "salt",
            "selected_tier", "current_price", "leaf", "siblings", "flags",
        })

    def public_inputs(self) -> dict[str, Any]:
        return self.model_dump(include={
            "commitment", "merkle_root", "policy_id", "policy_start_date",
            "paid_premium", "purchase_count",
        })

    def to_claim_inputs(self) -> ClaimInputs:
        return ClaimInputs(
            commitment=self.commitment,
            order_hash=self.order_hash,
            invoice_price=self.invoice_price,
            invoice_date=self.invoice_date,
            product_hash=self.product_hash,
            salt=self.salt,
            selected_tier=self.selected_tier,
            current_price=self.current_price,
            policy_start_date=self.policy_start_date,
            paid_premium=self.paid_premium,
            purchase_count=self.purchase_count,
        )


def check_inclusion(
    product_hash: int,
    current_price: int,
    leaf: int,
    siblings: Sequence[int],
    flags: Sequence[int],
    root: int,
    depth: int,
    hasher: FieldHasher = field_hash,
) -> None:
    """
    Verify that (product_hash, current_price) is a leaf under root.

    Raises:
        WitnessException: shape, leaf or path mismatch
    """
    if len(siblings) != depth or len(flags) != depth:
        raise WitnessException(
            f"Proof must have {depth} siblings and flags, "
            f"got {len(siblings)} and {len(flags)}",
        )
    for i, flag in enumerate(flags):
        if flag not in (0, 1):
            raise WitnessException(f"flags[{i}] must be 0 or 1, got {flag}")
    for i, sibling in enumerate(siblings):
        if not is_field_element(sibling):
            raise WitnessException(f"siblings[{i}] is not a field element")

    if hasher(product_hash, current_price) != leaf:
        raise WitnessException(
            "Leaf does not match product hash and current price",
            details={"leaf": str(leaf)},
        )
    if not verify_proof(leaf, siblings, flags, root, hasher):
        raise WitnessException(
            "Merkle proof does not verify against root",
            details={"root": str(root)},
        )


def prepare_witness(
    record: CommitmentRecord,
    policy: PolicyTerms,
    proof: ProductProof,
    depth: int,
) -> ClaimWitness:
    """
    Build the witness for a claim.

    Raises:
        CommitmentMismatchException: opening does not match the policy commitment
        WitnessException: oracle proof is for another product or does not verify
    """
    if record.commitment != policy.commitment:
        raise CommitmentMismatchException("Commitment record does not belong to this policy")
    if not verify_commitment(
        record.commitment,
        record.order_hash,
        record.invoice_price,
        record.invoice_date,
        record.product_hash,
        record.salt,
        record.selected_tier,
    ):
        raise CommitmentMismatchException()

    if proof.product_hash != record.product_hash:
        raise WitnessException(
            "Oracle proof is for a different product",
            details={"expected": str(record.product_hash), "actual": str(proof.product_hash)},
        )

    check_inclusion(
        proof.product_hash,
        proof.current_price,
        proof.leaf,
        proof.siblings,
        proof.flags,
        proof.root,
        depth,
    )

    logger.info(
        f"Witness prepared for policy {policy.policy_id} "
        f"(invoice={record.invoice_price}, current={proof.current_price})"
    )
    return ClaimWitness(
        order_hash=record.order_hash,
        invoice_price=record.invoice_price,
        invoice_date=record.invoice_date,
        product_hash=record.product_hash,
        salt=record.salt,
        selected_tier=record.selected_tier,
        current_price=proof.current_price,
        leaf=proof.leaf,
        siblings=list(proof.siblings),
        flags=list(proof.flags),
        commitment=policy.commitment,
        merkle_root=proof.root,
        policy_id=policy.policy_id,
        policy_start_date=policy.purchase_timestamp,
        paid_premium=policy.paid_premium,
        purchase_count=policy.purchase_count,
    )


def compute_public_signals(
    witness: ClaimWitness,
    table: TierTable,
) -> tuple[PublicSignals, ClaimEvaluation]:
    """Evaluate the claim and lay out its public signals."""
    evaluation = evaluate_claim(witness.to_claim_inputs(), table)
    signals = PublicSignals(
        valid_claim=int(evaluation.valid_claim),
        price_difference=evaluation.price_difference,
        valid_premium=int(evaluation.valid_premium),
        commitment=witness.commitment,
        invoice_price=witness.invoice_price,
        product_hash=witness.product_hash,
        policy_start_date=witness.policy_start_date,
        current_price=witness.current_price,
        policy_id=witness.policy_id,
        paid_premium=witness.paid_premium,
        purchase_count=witness.purchase_count,
    )
    return signals, evaluation


__all__ = [
    "PublicSignals",
    "PolicyTerms",
    "ClaimWitness",
    "check_inclusion",
    "prepare_witness",
    "compute_public_signals",
]
