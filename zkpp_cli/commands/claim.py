"""
CLI Claim Commands

Claimant-side tooling:
- commit: commit to a purchase and save the opening locally
- check: ask a running oracle whether a purchase is currently eligible
- simulate: run the whole claim flow against the local oracle and an
  in-memory settlement ledger

Usage:
    zkpp commit --order ORD-1 --product LAPTOP --price 1000000000 --date 1700000000 --out c.json
    zkpp check c.json [--oracle-url http://localhost:3001]
    zkpp simulate c.json [--json]
"""

from __future__ import annotations

import json
import logging
import time
from argparse import Namespace

from api.deps import build_tier_table
from claims import (
    DevelopmentProver,
    OracleClient,
    PurchaseDetails,
    generate_commitment,
    load_commitment,
    prepare_witness,
    save_commitment,
)
from core.config.runtime import RuntimeConfig
from ledger import InMemoryLedger
from zkpp_cli.commands.oracle import open_oracle


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


def _config(args: Namespace) -> RuntimeConfig:
    config = getattr(args, "runtime_config", None)
    return config if config is not None else RuntimeConfig()


def commit_cmd(args: Namespace) -> int:
    """Commit to a purchase and write the opening to --out."""
    config = _config(args)
    details = PurchaseDetails(
        order_number=args.order,
        product_id=args.product,
        invoice_price=args.price,
        invoice_date=args.date if args.date is not None else int(time.time()),
    )
    record = generate_commitment(details, build_tier_table(config))
    save_commitment(record, args.out)

    print(f"commitment: {record.commitment_hex}")
    print(f"tier: {record.selected_tier}")
    print(f"saved: {args.out}")
    print("Keep this file private; it opens the commitment.")
    return EXIT_SUCCESS


def check_cmd(args: Namespace) -> int:
    """Exit 0 when the committed product's price has dropped, 2 otherwise."""
    record = load_commitment(args.commitment)
    client = OracleClient(args.oracle_url, depth=_config(args).oracle.tree_depth)
    try:
        eligibility = client.check_price_eligibility(record.product_id, record.invoice_price)
    finally:
        client.close()

    if args.json:
        print(json.dumps(eligibility.model_dump(), indent=2))
    else:
        print(f"product: {record.product_id}")
        print(f"invoice_price: {record.invoice_price}")
        print(f"current_price: {eligibility.current_price}")
        print(f"drop: {eligibility.price_drop_amount} ({eligibility.price_drop_percentage:.2f}%)")
        print(f"eligible: {str(eligibility.eligible).lower()}")
    return EXIT_SUCCESS if eligibility.eligible else EXIT_VERIFICATION_FAILED


def simulate_cmd(args: Namespace) -> int:
    """
    Purchase a policy for a saved commitment and settle a claim on it.

    The policy is bought at the quoted premium with a start date one second
    after the invoice date, so the outcome depends only on the current
    oracle price.
    """
    config = _config(args)
    depth = config.oracle.tree_depth
    table = build_tier_table(config)
    record = load_commitment(args.commitment)

    with open_oracle(config) as oracle:
        prover = DevelopmentProver(depth=depth, table=table)
        ledger = InMemoryLedger(prover=prover, table=table, initial_root=oracle.root, depth=depth)

        policy = ledger.purchase_policy(
            record.commitment,
            ledger.quote(record.selected_tier),
            purchase_timestamp=record.invoice_date + 1,
        )
        proof = oracle.proof_for(record.product_id)

    witness = prepare_witness(record, policy.terms(), proof, depth)
    zk_proof, signals = prover.prove(witness.private_inputs(), witness.public_inputs())
    receipt = ledger.submit_claim(policy.policy_id, zk_proof, signals)

    if args.json:
        print(json.dumps({
            "policyId": policy.policy_id,
            "paidPremium": policy.paid_premium,
            "publicSignals": signals.to_strings(),
            "receipt": receipt.model_dump(),
        }, indent=2))
    else:
        print(f"policy_id: {policy.policy_id}")
        print(f"paid_premium: {policy.paid_premium}")
        print(f"current_price: {proof.current_price}")
        print(f"accepted: {str(receipt.accepted).lower()}")
        print(f"payout: {receipt.payout}")
        if receipt.reason:
            print(f"reason: {receipt.reason}")
    return EXIT_SUCCESS if receipt.accepted else EXIT_VERIFICATION_FAILED
