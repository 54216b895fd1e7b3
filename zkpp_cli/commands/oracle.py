"""
CLI Oracle Commands

Operate on the persisted oracle state directly, without a running server:
list prices, mutate them, print inclusion proofs, export state and show
ledger sync status.

Usage:
    zkpp prices [--json]
    zkpp set-price LAPTOP 900000000
    zkpp drop-prices 20
    zkpp reset
    zkpp rebuild
    zkpp proof LAPTOP [--verify] [--json]
    zkpp export [--out state.json]
    zkpp status [--json]
"""

from __future__ import annotations

import json
import logging
from argparse import Namespace
from pathlib import Path
from typing import Any

from api.deps import build_oracle
from core.config.runtime import RuntimeConfig
from core.merkle import MerkleProof
from oracle import InitMode, PriceOracle


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


def open_oracle(config: RuntimeConfig, mode: InitMode | None = None) -> PriceOracle:
    """Build and initialize an oracle from configuration."""
    oracle = build_oracle(config)
    if mode is None:
        mode = InitMode.FORCE_REBUILD if config.oracle.force_rebuild else InitMode.RESUME
    oracle.initialize(mode)
    return oracle


def _config(args: Namespace) -> RuntimeConfig:
    config = getattr(args, "runtime_config", None)
    return config if config is not None else RuntimeConfig()


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def _print_prices(oracle: PriceOracle) -> None:
    print(f"merkle_root: {oracle.root}")
    for view in oracle.prices():
        print(
            f"  {view.id:<12} {view.name:<24} "
            f"current={view.current_price:<14} base={view.base_price:<14} "
            f"change={view.change_pct:+.2f}%"
        )


def prices_cmd(args: Namespace) -> int:
    """List every product with its current and base price."""
    with open_oracle(_config(args)) as oracle:
        if args.json:
            _print_json({
                "merkleRoot": str(oracle.root),
                "prices": [v.model_dump(by_alias=True) for v in oracle.prices()],
            })
        else:
            _print_prices(oracle)
    return EXIT_SUCCESS


def set_price_cmd(args: Namespace) -> int:
    with open_oracle(_config(args)) as oracle:
        old_root = oracle.root
        new_root = oracle.set_price(args.product_id, args.price)
        print(f"old_root: {old_root}")
        print(f"new_root: {new_root}")
    return EXIT_SUCCESS


def drop_prices_cmd(args: Namespace) -> int:
    with open_oracle(_config(args)) as oracle:
        old_root = oracle.root
        new_root = oracle.drop_all_prices(args.percentage)
        print(f"All prices dropped by {args.percentage:g}%")
        print(f"old_root: {old_root}")
        print(f"new_root: {new_root}")
    return EXIT_SUCCESS


def reset_cmd(args: Namespace) -> int:
    with open_oracle(_config(args)) as oracle:
        new_root = oracle.reset_all()
        print(f"All prices reset; new_root: {new_root}")
    return EXIT_SUCCESS


def rebuild_cmd(args: Namespace) -> int:
    """Discard saved state and rebuild from base prices."""
    with open_oracle(_config(args), mode=InitMode.FORCE_REBUILD) as oracle:
        print(f"Rebuilt from base prices; root: {oracle.root}")
    return EXIT_SUCCESS


def proof_cmd(args: Namespace) -> int:
    """
    Print an inclusion proof for one product.

    With --verify the proof is also checked against the root and the exit
    code is 2 when it does not verify.
    """
    with open_oracle(_config(args)) as oracle:
        proof = oracle.proof_for(args.product_id)

    ok = None
    if args.verify:
        ok = MerkleProof(
            leaf=proof.leaf,
            index=proof.leaf_index,
            siblings=proof.siblings,
            flags=proof.flags,
            root=proof.root,
        ).verify()

    if args.json:
        data = proof.to_wire()
        if ok is not None:
            data["verified"] = ok
        _print_json(data)
    else:
        print(f"product: {proof.product_id} ({proof.product_name})")
        print(f"current_price: {proof.current_price}")
        print(f"leaf_index: {proof.leaf_index}")
        print(f"leaf: {proof.leaf}")
        print(f"root: {proof.root}")
        for level, (sibling, flag) in enumerate(zip(proof.siblings, proof.flags)):
            print(f"  [{level}] flag={flag} sibling={sibling}")
        if ok is not None:
            print(f"verified: {str(ok).lower()}")

    if ok is False:
        return EXIT_VERIFICATION_FAILED
    return EXIT_SUCCESS


def export_cmd(args: Namespace) -> int:
    with open_oracle(_config(args)) as oracle:
        state = oracle.export_state()
    text = json.dumps(state, indent=2)
    if args.out:
        Path(args.out).write_text(text, encoding="utf-8")
        logger.info(f"Exported state to {args.out}")
        print(f"saved: {args.out}")
    else:
        print(text)
    return EXIT_SUCCESS


def status_cmd(args: Namespace) -> int:
    """Reconcile with the ledger and report the outcome."""
    with open_oracle(_config(args)) as oracle:
        oracle.wait_for_sync()
        status = oracle.sync_status()

    if args.json:
        _print_json(status.model_dump(by_alias=True, mode="json"))
    else:
        print(f"local_root: {status.local_root}")
        print(f"ledger_root: {status.ledger_root}")
        print(f"connected: {str(status.connected).lower()}")
        print(f"consistent: {str(status.consistent).lower()}")
        print(f"message: {status.message}")
        if status.last_error:
            print(f"last_error: {status.last_error}")
    return EXIT_SUCCESS if status.consistent else EXIT_VERIFICATION_FAILED
