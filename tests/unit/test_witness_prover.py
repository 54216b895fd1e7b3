"""
Witness and Prover Unit Tests
Tests for claims/witness.py and claims/prover.py
"""
import pytest

from claims.prover import DEVELOPMENT_SCHEME, DevelopmentProver, proof_root
from claims.tiers import USDC
from claims.witness import PolicyTerms, PublicSignals, compute_public_signals, prepare_witness
from core.errors import (
    CommitmentMismatchException,
    ProofRejectedException,
    WitnessException,
)
from fixtures.common import INVOICE_DATE, make_commitment


@pytest.fixture
def record():
    return make_commitment(product_id="LAPTOP", invoice_price=1200 * USDC)


@pytest.fixture
def terms(record):
    return PolicyTerms(
        policy_id=1,
        commitment=record.commitment,
        purchase_timestamp=INVOICE_DATE + 60,
        paid_premium=100 * USDC,
        purchase_count=0,
    )


@pytest.fixture
def dropped_proof(oracle):
    oracle.set_price("LAPTOP", 1000 * USDC)
    return oracle.proof_for("LAPTOP")


@pytest.fixture
def prover(tier_table):
    return DevelopmentProver(depth=4, table=tier_table)


class TestPublicSignals:
    """Tests for the public signal layout."""

    def _signals(self):
        values = [1, 200, 0, 12345, 1200, 678, 1_700_000_060, 1000, 7, 100, 3]
        return PublicSignals.from_list(values)

    def test_order(self):
        """Signals are laid out in the fixed contract order."""
        assert PublicSignals.ORDER == (
            "valid_claim", "price_difference", "valid_premium", "commitment",
            "invoice_price", "product_hash", "policy_start_date", "current_price",
            "policy_id", "paid_premium", "purchase_count",
        )

    def test_list_round_trip(self):
        """from_list(to_strings()) restores the signals."""
        signals = self._signals()
        assert PublicSignals.from_list(signals.to_strings()) == signals

    def test_wrong_length(self):
        """A short list is rejected."""
        with pytest.raises(WitnessException):
            PublicSignals.from_list([1, 2, 3])

    def test_non_integer(self):
        """Non-numeric entries are rejected."""
        values = ["x"] * len(PublicSignals.ORDER)
        with pytest.raises(WitnessException):
            PublicSignals.from_list(values)


class TestPrepareWitness:
    """Tests for prepare_witness."""

    def test_builds_witness(self, record, terms, dropped_proof):
        """A matching record, policy and proof give a witness."""
        witness = prepare_witness(record, terms, dropped_proof, depth=4)
        assert witness.current_price == 1000 * USDC
        assert witness.merkle_root == dropped_proof.root
        assert witness.policy_start_date == terms.purchase_timestamp

    def test_other_policy_commitment(self, record, terms, dropped_proof):
        """A record for another policy is rejected."""
        other = terms.model_copy(update={"commitment": terms.commitment + 1})
        with pytest.raises(CommitmentMismatchException):
            prepare_witness(record, other, dropped_proof, depth=4)

    def test_record_that_does_not_open(self, record, terms, dropped_proof):
        """A tampered opening is rejected."""
        tampered = record.model_copy(update={"invoice_price": record.invoice_price + 1})
        with pytest.raises(CommitmentMismatchException):
            prepare_witness(tampered, terms, dropped_proof, depth=4)

    def test_mismatched_product(self, record, terms, oracle):
        """A proof for another product is rejected."""
        proof = oracle.proof_for("PHONE")
        with pytest.raises(WitnessException, match="different product"):
            prepare_witness(record, terms, proof, depth=4)

    def test_mismatched_leaf(self, record, terms, dropped_proof):
        """A leaf that does not hash the product and price is rejected."""
        bad = dropped_proof.model_copy(update={"leaf": dropped_proof.leaf + 1})
        with pytest.raises(WitnessException, match="Leaf"):
            prepare_witness(record, terms, bad, depth=4)

    def test_inflated_current_price(self, record, terms, dropped_proof):
        """Claiming a lower price than the one proven is rejected."""
        bad = dropped_proof.model_copy(update={"current_price": 1})
        with pytest.raises(WitnessException):
            prepare_witness(record, terms, bad, depth=4)

    def test_tampered_sibling(self, record, terms, dropped_proof):
        """A broken path is rejected."""
        siblings = list(dropped_proof.siblings)
        siblings[0] = siblings[0] + 1
        bad = dropped_proof.model_copy(update={"siblings": siblings})
        with pytest.raises(WitnessException, match="does not verify"):
            prepare_witness(record, terms, bad, depth=4)

    def test_wrong_depth(self, record, terms, dropped_proof):
        """Proofs of another depth are rejected."""
        with pytest.raises(WitnessException):
            prepare_witness(record, terms, dropped_proof, depth=5)

    def test_public_signals(self, record, terms, dropped_proof, tier_table):
        """Signals report the drop and both predicates."""
        witness = prepare_witness(record, terms, dropped_proof, depth=4)
        signals, evaluation = compute_public_signals(witness, tier_table)
        assert signals.valid_claim == 1
        assert signals.valid_premium == 1
        assert signals.price_difference == 200 * USDC
        assert evaluation.payout == 200 * USDC


class TestDevelopmentProver:
    """Tests for the development proving backend."""

    def test_prove_and_verify(self, record, terms, dropped_proof, prover):
        """An honest proof verifies."""
        witness = prepare_witness(record, terms, dropped_proof, depth=4)
        proof, signals = prover.prove(witness.private_inputs(), witness.public_inputs())
        assert proof["scheme"] == DEVELOPMENT_SCHEME
        assert proof_root(proof) == dropped_proof.root
        assert prover.verify(proof, signals)

    def test_tampered_signal_rejected(self, record, terms, dropped_proof, prover):
        """Changing any public signal breaks verification."""
        witness = prepare_witness(record, terms, dropped_proof, depth=4)
        proof, signals = prover.prove(witness.private_inputs(), witness.public_inputs())
        forged = signals.model_copy(update={"price_difference": signals.price_difference + 1})
        assert not prover.verify(proof, forged)
        with pytest.raises(ProofRejectedException):
            prover.verify_or_raise(proof, forged)

    def test_wrong_scheme_rejected(self, record, terms, dropped_proof, prover):
        """Unknown proof schemes never verify."""
        witness = prepare_witness(record, terms, dropped_proof, depth=4)
        proof, signals = prover.prove(witness.private_inputs(), witness.public_inputs())
        assert not prover.verify({**proof, "scheme": "groth16"}, signals)

    def test_malformed_proof(self, prover, record, terms, dropped_proof):
        """Missing fields return False instead of raising."""
        witness = prepare_witness(record, terms, dropped_proof, depth=4)
        _, signals = prover.prove(witness.private_inputs(), witness.public_inputs())
        assert not prover.verify({"scheme": DEVELOPMENT_SCHEME}, signals)

    def test_unsatisfiable_inclusion(self, record, terms, dropped_proof, prover):
        """Inputs whose path does not verify cannot be proven."""
        witness = prepare_witness(record, terms, dropped_proof, depth=4)
        public = witness.public_inputs()
        public["merkle_root"] = public["merkle_root"] + 1
        with pytest.raises(WitnessException):
            prover.prove(witness.private_inputs(), public)

    def test_unsatisfiable_commitment(self, record, terms, dropped_proof, prover):
        """Inputs that do not open the commitment cannot be proven."""
        witness = prepare_witness(record, terms, dropped_proof, depth=4)
        private = witness.private_inputs()
        private["salt"] = private["salt"] + 1
        with pytest.raises(WitnessException):
            prover.prove(private, witness.public_inputs())

    def test_malformed_inputs(self, prover):
        """Missing inputs raise WitnessException."""
        with pytest.raises(WitnessException):
            prover.prove({}, {})
