"""
Runtime Configuration Module

Provides configuration loading and management for the price oracle.
"""

from .runtime import (
    BlobConfig,
    LedgerConfig,
    OracleConfig,
    RetryConfig,
    RuntimeConfig,
    ServerConfig,
    TierConfig,
)

__all__ = [
    "BlobConfig",
    "LedgerConfig",
    "OracleConfig",
    "RetryConfig",
    "RuntimeConfig",
    "ServerConfig",
    "TierConfig",
]
