"""
CLI Main Entry Point

Parses command-line arguments and dispatches to subcommands.

Usage:
    python -m zkpp_cli serve [--port 3001]
    python -m zkpp_cli prices [--json]
    python -m zkpp_cli set-price <product_id> <price>
    python -m zkpp_cli drop-prices [percentage]
    python -m zkpp_cli reset
    python -m zkpp_cli rebuild
    python -m zkpp_cli proof <product_id> [--verify] [--json]
    python -m zkpp_cli export [--out PATH]
    python -m zkpp_cli status [--json]
    python -m zkpp_cli commit --order ID --product ID --price N [--date TS] --out PATH
    python -m zkpp_cli check <commitment.json> [--oracle-url URL]
    python -m zkpp_cli simulate <commitment.json>

Environment Variables:
    ZKPP_TREE_DEPTH         Merkle tree depth (default: 4)
    ZKPP_STATE_PATH         Snapshot file (default: ./merkle-tree.json)
    ZKPP_PRODUCTS_PATH      Product catalog (default: ./products.json)
    ZKPP_FORCE_REBUILD      Rebuild from base prices at startup
    ZKPP_LEDGER_URL         Ledger gateway base URL
    ZKPP_BLOB_PUBLISH_URL   Blob publication endpoint
    ZKPP_LOG_LEVEL          Log level (default: INFO)
"""

from __future__ import annotations

import argparse
import logging
import sys
import traceback
from pathlib import Path
from typing import Sequence

from api.deps import load_runtime_config
from api.errors import status_for
from core.errors import ZkppException
from zkpp_cli.commands import claim, oracle, serve


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2
EXIT_INVALID_INPUT = 2


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def _percentage(value: str) -> float:
    pct = float(value)
    if not 0 < pct <= 100:
        raise argparse.ArgumentTypeError(f"percentage must be in (0, 100], got {value}")
    return pct


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="zkpp",
        description="ZKPP CLI - Run the price oracle and manage price-protection claims.",
    )
    parser.add_argument(
        "--version", action="version", version="%(prog)s 0.1.0"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to configuration file (default: ./zkpp.yaml or ~/.config/zkpp/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Also write logs to this file",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Print tracebacks on error",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- serve command ---
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the oracle HTTP API",
    )
    serve_parser.add_argument("--host", type=str, default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: 3001)")
    serve_parser.add_argument(
        "--force-rebuild",
        action="store_true",
        default=False,
        help="Ignore saved state and start from base prices",
    )
    serve_parser.set_defaults(func=serve.serve_cmd)

    # --- prices command ---
    prices_parser = subparsers.add_parser("prices", help="List current prices")
    prices_parser.add_argument("--json", action="store_true", default=False)
    prices_parser.set_defaults(func=oracle.prices_cmd)

    # --- set-price command ---
    set_parser = subparsers.add_parser("set-price", help="Set one product's price")
    set_parser.add_argument("product_id", type=str)
    set_parser.add_argument("price", type=int, help="New price in 6-decimal units")
    set_parser.set_defaults(func=oracle.set_price_cmd)

    # --- drop-prices command ---
    drop_parser = subparsers.add_parser("drop-prices", help="Drop every price by a percentage")
    drop_parser.add_argument(
        "percentage",
        type=_percentage,
        nargs="?",
        default=20.0,
        help="Percent to drop by (default: 20)",
    )
    drop_parser.set_defaults(func=oracle.drop_prices_cmd)

    # --- reset command ---
    reset_parser = subparsers.add_parser("reset", help="Reset every price to its base price")
    reset_parser.set_defaults(func=oracle.reset_cmd)

    # --- rebuild command ---
    rebuild_parser = subparsers.add_parser(
        "rebuild",
        help="Discard saved state and rebuild from base prices",
    )
    rebuild_parser.set_defaults(func=oracle.rebuild_cmd)

    # --- proof command ---
    proof_parser = subparsers.add_parser("proof", help="Print a product's inclusion proof")
    proof_parser.add_argument("product_id", type=str)
    proof_parser.add_argument(
        "--verify",
        action="store_true",
        default=False,
        help="Verify the proof against the root (exit 2 on failure)",
    )
    proof_parser.add_argument("--json", action="store_true", default=False)
    proof_parser.set_defaults(func=oracle.proof_cmd)

    # --- export command ---
    export_parser = subparsers.add_parser("export", help="Export the persisted snapshot")
    export_parser.add_argument("--out", "-o", type=str, default=None, help="Output file")
    export_parser.set_defaults(func=oracle.export_cmd)

    # --- status command ---
    status_parser = subparsers.add_parser(
        "status",
        help="Reconcile with the ledger and show sync status (exit 2 if inconsistent)",
    )
    status_parser.add_argument("--json", action="store_true", default=False)
    status_parser.set_defaults(func=oracle.status_cmd)

    # --- commit command ---
    commit_parser = subparsers.add_parser("commit", help="Commit to a purchase")
    commit_parser.add_argument("--order", type=str, required=True, help="Order number")
    commit_parser.add_argument("--product", type=str, required=True, help="Product id")
    commit_parser.add_argument(
        "--price", type=int, required=True, help="Invoice price in 6-decimal units"
    )
    commit_parser.add_argument(
        "--date", type=int, default=None, help="Invoice date, unix seconds (default: now)"
    )
    commit_parser.add_argument(
        "--out", "-o", type=str, default="commitment.json", help="Where to save the opening"
    )
    commit_parser.set_defaults(func=claim.commit_cmd)

    # --- check command ---
    check_parser = subparsers.add_parser(
        "check",
        help="Check claim eligibility against a running oracle (exit 2 if not eligible)",
    )
    check_parser.add_argument("commitment", type=str, help="Commitment file from 'commit'")
    check_parser.add_argument(
        "--oracle-url", type=str, default="http://localhost:3001", help="Oracle API base URL"
    )
    check_parser.add_argument("--json", action="store_true", default=False)
    check_parser.set_defaults(func=claim.check_cmd)

    # --- simulate command ---
    simulate_parser = subparsers.add_parser(
        "simulate",
        help="Run the full claim flow against the local oracle (exit 2 if not paid)",
    )
    simulate_parser.add_argument("commitment", type=str, help="Commitment file from 'commit'")
    simulate_parser.add_argument("--json", action="store_true", default=False)
    simulate_parser.set_defaults(func=claim.simulate_cmd)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0=success, 1=runtime error,
        2=check failed, not found or invalid input)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_RUNTIME_ERROR

    # Load configuration
    try:
        config = load_runtime_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    # Setup logging
    log_level = args.log_level or config.log_level
    setup_logging(level=log_level, log_file=args.log_file)

    # Attach config to args for commands to use
    args.runtime_config = config

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ZkppException as e:
        if args.debug:
            traceback.print_exc()
        else:
            print(f"Error: {e}", file=sys.stderr)
        # Client-side failures (HTTP 4xx on the API) are input errors
        return EXIT_INVALID_INPUT if status_for(e) < 500 else EXIT_RUNTIME_ERROR
    except Exception as e:
        if args.debug:
            traceback.print_exc()
        else:
            print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    sys.exit(main())
