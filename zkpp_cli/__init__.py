"""
ZKPP CLI

Command-line interface for the price oracle and the claimant tooling.

Usage:
    python -m zkpp_cli serve
    python -m zkpp_cli prices
    python -m zkpp_cli drop-prices 20
    python -m zkpp_cli proof LAPTOP --verify
    python -m zkpp_cli commit --order ORD-1 --product LAPTOP --price 1000000000 --date 1700000000
"""

__version__ = "0.1.0"
