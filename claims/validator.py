"""
Claim Validator

The one canonical definition of the claim arithmetic. The witness
preparer, the development prover and the settlement ledger all call these
functions, so they cannot drift apart.

Predicates:
- valid_claim   = invoice_price > current_price and invoice_date <= policy_start_date
- valid_premium = classify(invoice_price) == selected_tier
                  and paid_premium == expected_premium(selected_tier, factor(purchase_count))
- payout        = price_drop if valid_claim and valid_premium else 0

All integer arithmetic; division floors.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field

from core.crypto.field import ensure_field_element, field_hash
from core.errors import FieldOverflowException, PriceOutOfRangeException

from .tiers import TierTable

logger = logging.getLogger(__name__)


def classify_tier(price: int, table: TierTable) -> int:
    """Tier id for an invoice price. Raises PriceOutOfRangeException."""
    return table.classify(price)


def dynamic_factor(total_sold: int) -> int:
    """Premium multiplier in percent: 100 + total_sold // 10."""
    if total_sold < 0:
        raise ValueError(f"total_sold must be non-negative, got {total_sold}")
    return 100 + total_sold // 10


def expected_premium(tier_id: int, factor: int, table: TierTable) -> int:
    """base_premium(tier) * factor // 100."""
    return table.base_premium(tier_id) * factor // 100


def build_commitment(
    order_hash: int,
    invoice_price: int,
    invoice_date: int,
    product_hash: int,
    salt: int,
    tier: int,
) -> int:
    """Hiding commitment to a purchase."""
    return field_hash(order_hash, invoice_price, invoice_date, product_hash, salt, tier)


def verify_commitment(
    commitment: int,
    order_hash: int,
    invoice_price: int,
    invoice_date: int,
    product_hash: int,
    salt: int,
    tier: int,
) -> bool:
    """True if the purchase fields open commitment."""
    try:
        rebuilt = build_commitment(
            order_hash, invoice_price, invoice_date, product_hash, salt, tier
        )
    except FieldOverflowException:
        return False
    return rebuilt == commitment


def price_drop(invoice_price: int, current_price: int) -> int:
    return max(invoice_price - current_price, 0)


def is_valid_claim(
    invoice_price: int,
    current_price: int,
    invoice_date: int,
    policy_start_date: int,
) -> bool:
    """Price fell below the invoice, and the purchase predates the policy."""
    return invoice_price > current_price and invoice_date <= policy_start_date


def is_valid_premium(
    invoice_price: int,
    selected_tier: int,
    paid_premium: int,
    purchase_count: int,
    table: TierTable,
) -> bool:
    """
    Tier matches the invoice price and the premium matches the tier at the
    factor fixed at purchase time.

    Returns False (never raises) for prices or tiers outside the table.
    """
    try:
        if classify_tier(invoice_price, table) != selected_tier:
            return False
        expected = expected_premium(selected_tier, dynamic_factor(purchase_count), table)
    except (PriceOutOfRangeException, ValueError):
        return False
    return paid_premium == expected


def compute_payout(
    invoice_price: int,
    current_price: int,
    valid_claim: bool,
    valid_premium: bool,
) -> int:
    if valid_claim and valid_premium:
        return price_drop(invoice_price, current_price)
    return 0


class ClaimInputs(BaseModel):
    """Everything needed to evaluate one claim (private and public values)."""

    model_config = ConfigDict(extra="forbid")

    commitment: int = Field(..., ge=0)
    order_hash: int = Field(..., ge=0)
    invoice_price: int = Field(..., ge=0)
    invoice_date: int = Field(..., ge=0, description="Unix seconds")
    product_hash: int = Field(..., ge=0)
    salt: int = Field(..., ge=0)
    selected_tier: int = Field(..., ge=0)
    current_price: int = Field(..., ge=0)
    policy_start_date: int = Field(..., ge=0, description="Unix seconds")
    paid_premium: int = Field(..., ge=0)
    purchase_count: int = Field(..., ge=0)


class ClaimEvaluation(BaseModel):
    """Outcome of evaluate_claim()."""

    model_config = ConfigDict(extra="forbid")

    commitment_ok: bool
    valid_claim: bool
    valid_premium: bool
    price_difference: int
    payout: int

    @property
    def payable(self) -> bool:
        return self.payout > 0


def evaluate_claim(inputs: ClaimInputs, table: TierTable) -> ClaimEvaluation:
    """
    Run every predicate for a claim.

    A commitment that does not open forces payout to 0, as the proving
    circuit would be unsatisfiable.
    """
    for name in ("commitment", "order_hash", "product_hash", "salt"):
        ensure_field_element(getattr(inputs, name), name)

    commitment_ok = verify_commitment(
        inputs.commitment,
        inputs.order_hash,
        inputs.invoice_price,
        inputs.invoice_date,
        inputs.product_hash,
        inputs.salt,
        inputs.selected_tier,
    )
    valid_claim = is_valid_claim(
        inputs.invoice_price,
        inputs.current_price,
        inputs.invoice_date,
        inputs.policy_start_date,
    )
    valid_premium = is_valid_premium(
        inputs.invoice_price,
        inputs.selected_tier,
        inputs.paid_premium,
        inputs.purchase_count,
        table,
    )
    payout = 0
    if commitment_ok:
        payout = compute_payout(
            inputs.invoice_price, inputs.current_price, valid_claim, valid_premium
        )

    logger.debug(
        f"Claim evaluated: commitment_ok={commitment_ok} valid_claim={valid_claim} "
        f"valid_premium={valid_premium} payout={payout}"
    )
    return ClaimEvaluation(
        commitment_ok=commitment_ok,
        valid_claim=valid_claim,
        valid_premium=valid_premium,
        price_difference=price_drop(inputs.invoice_price, inputs.current_price),
        payout=payout,
    )


__all__ = [
    "classify_tier",
    "dynamic_factor",
    "expected_premium",
    "build_commitment",
    "verify_commitment",
    "price_drop",
    "is_valid_claim",
    "is_valid_premium",
    "compute_payout",
    "ClaimInputs",
    "ClaimEvaluation",
    "evaluate_claim",
]
