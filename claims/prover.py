"""
Proving Backends

The claim proof system is an external collaborator with two operations:

    prove(private_inputs, public_inputs) -> (proof, public_signals)
    verify(proof, public_signals, verification_key) -> bool

DevelopmentProver is a transparent stand-in used in development and tests.
It enforces the same constraints a circuit would (commitment opening,
Merkle inclusion, claim arithmetic) and binds the resulting public signals
and Merkle root with field_hash. It hides nothing; never deploy it where
zero knowledge is required.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import ValidationError

from core.crypto.field import field_hash
from core.errors import FieldOverflowException, ProofRejectedException, WitnessException

from .tiers import TierTable
from .witness import ClaimWitness, PublicSignals, check_inclusion, compute_public_signals
from .validator import verify_commitment

logger = logging.getLogger(__name__)

DEVELOPMENT_SCHEME = "development"


@runtime_checkable
class ProvingBackend(Protocol):
    """
    Protocol for claim proof generation and verification.

    Proofs must name the Merkle root they were generated against under
    "merkle_root"; settlement rejects proofs that do not.
    """

    def prove(
        self,
        private_inputs: dict[str, Any],
        public_inputs: dict[str, Any],
    ) -> tuple[dict[str, Any], PublicSignals]:
        ...

    def verify(
        self,
        proof: dict[str, Any],
        public_signals: PublicSignals,
        verification_key: Optional[dict[str, Any]] = None,
    ) -> bool:
        ...


class DevelopmentProver:
    """
    Transparent proving backend.

    Usage:
        prover = DevelopmentProver(depth=4)
        proof, signals = prover.prove(witness.private_inputs(), witness.public_inputs())
        assert prover.verify(proof, signals)
    """

    def __init__(self, depth: int, table: Optional[TierTable] = None) -> None:
        self.depth = depth
        self.table = table or TierTable.default()

    @property
    def verification_key(self) -> dict[str, Any]:
        return {"scheme": DEVELOPMENT_SCHEME, "depth": self.depth}

    def prove(
        self,
        private_inputs: dict[str, Any],
        public_inputs: dict[str, Any],
    ) -> tuple[dict[str, Any], PublicSignals]:
        """
        Check every constraint and emit a bound proof.

        Raises:
            WitnessException: inputs are malformed or unsatisfiable
        """
        try:
            witness = ClaimWitness(**private_inputs, **public_inputs)
        except (ValidationError, TypeError) as e:
            raise WitnessException(f"Malformed claim inputs: {e}") from e

        if not verify_commitment(
            witness.commitment,
            witness.order_hash,
            witness.invoice_price,
            witness.invoice_date,
            witness.product_hash,
            witness.salt,
            witness.selected_tier,
        ):
            raise WitnessException("Commitment constraint not satisfied")

        check_inclusion(
            witness.product_hash,
            witness.current_price,
            witness.leaf,
            witness.siblings,
            witness.flags,
            witness.merkle_root,
            self.depth,
        )

        signals, evaluation = compute_public_signals(witness, self.table)
        proof = {
            "scheme": DEVELOPMENT_SCHEME,
            "merkle_root": str(witness.merkle_root),
            "binding": str(self._binding(signals, witness.merkle_root)),
        }
        logger.info(
            f"Development proof generated for policy {witness.policy_id} "
            f"(payout={evaluation.payout})"
        )
        return proof, signals

    def verify(
        self,
        proof: dict[str, Any],
        public_signals: PublicSignals,
        verification_key: Optional[dict[str, Any]] = None,
    ) -> bool:
        key = verification_key or self.verification_key
        if key.get("scheme") != DEVELOPMENT_SCHEME or proof.get("scheme") != DEVELOPMENT_SCHEME:
            return False
        try:
            root = int(proof["merkle_root"])
            binding = int(proof["binding"])
            return self._binding(public_signals, root) == binding
        except (KeyError, TypeError, ValueError, FieldOverflowException):
            return False

    def verify_or_raise(
        self,
        proof: dict[str, Any],
        public_signals: PublicSignals,
        verification_key: Optional[dict[str, Any]] = None,
    ) -> None:
        if not self.verify(proof, public_signals, verification_key):
            raise ProofRejectedException()

    @staticmethod
    def _binding(signals: PublicSignals, merkle_root: int) -> int:
        return field_hash(*signals.to_list(), merkle_root)


def proof_root(proof: dict[str, Any]) -> Optional[int]:
    """
    Merkle root a proof was generated against.

    Every backend must record it under "merkle_root"; None when absent or
    not an integer.
    """
    value = proof.get("merkle_root")
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


__all__ = [
    "DEVELOPMENT_SCHEME",
    "ProvingBackend",
    "DevelopmentProver",
    "proof_root",
]
