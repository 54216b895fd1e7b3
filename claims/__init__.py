"""
Claims Module

Claim arithmetic shared by every party, plus the claimant-side tooling that
turns a purchase into a settled claim:

    generate_commitment -> purchase policy -> OracleClient.get_merkle_proof
    -> prepare_witness -> ProvingBackend.prove -> LedgerClient.submit_claim
"""

from .commitment import (
    CommitmentRecord,
    PurchaseDetails,
    generate_commitment,
    load_commitment,
    save_commitment,
)
from .oracle_client import OracleClient, PriceEligibility
from .prover import DevelopmentProver, ProvingBackend
from .tiers import USDC, TierRange, TierTable
from .validator import (
    ClaimEvaluation,
    ClaimInputs,
    build_commitment,
    classify_tier,
    dynamic_factor,
    evaluate_claim,
    expected_premium,
    is_valid_claim,
    is_valid_premium,
    price_drop,
    verify_commitment,
)
from .witness import ClaimWitness, PolicyTerms, PublicSignals, prepare_witness

__all__ = [
    "CommitmentRecord",
    "PurchaseDetails",
    "generate_commitment",
    "load_commitment",
    "save_commitment",
    "OracleClient",
    "PriceEligibility",
    "DevelopmentProver",
    "ProvingBackend",
    "USDC",
    "TierRange",
    "TierTable",
    "ClaimEvaluation",
    "ClaimInputs",
    "build_commitment",
    "classify_tier",
    "dynamic_factor",
    "evaluate_claim",
    "expected_premium",
    "is_valid_claim",
    "is_valid_premium",
    "price_drop",
    "verify_commitment",
    "ClaimWitness",
    "PolicyTerms",
    "PublicSignals",
    "prepare_witness",
]
