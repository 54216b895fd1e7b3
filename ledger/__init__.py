"""
Ledger Module

Settlement ledger collaborators: the LedgerClient protocol, an in-memory
reference settlement, and an HTTP gateway client.
"""

from .base import ClaimReceipt, LedgerClient, LedgerReceipt
from .http import HttpLedgerClient
from .memory import InMemoryLedger, Policy

__all__ = [
    "ClaimReceipt",
    "LedgerClient",
    "LedgerReceipt",
    "HttpLedgerClient",
    "InMemoryLedger",
    "Policy",
]
