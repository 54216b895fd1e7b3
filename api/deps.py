"""
API Dependencies

Dependency injection for the API. Builds the oracle and its collaborators
from RuntimeConfig and exposes it to routes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import Request

from claims.prover import DevelopmentProver
from claims.tiers import TierTable
from core.blob import BlobCodec
from core.config.runtime import RuntimeConfig
from core.errors import OracleNotInitializedException
from core.retry import RetryExecutor
from ledger import HttpLedgerClient, InMemoryLedger, LedgerClient
from oracle import (
    BlobPublisher,
    HttpBlobPublisher,
    InMemoryBlobPublisher,
    OracleStateStore,
    PriceOracle,
    load_products,
)

logger = logging.getLogger(__name__)


def load_runtime_config(path: Optional[Path] = None) -> RuntimeConfig:
    """Load RuntimeConfig from a config file, then overlay environment variables.

    An explicit path wins. Otherwise the search order for config file is:
      1. ./zkpp.yaml
      2. ./zkpp.yml
      3. ~/.config/zkpp/config.yaml

    Environment variables ALWAYS override config file values.
    The .env file is loaded automatically by core.config.runtime on import.
    """
    search_paths = [
        Path.cwd() / "zkpp.yaml",
        Path.cwd() / "zkpp.yml",
        Path.home() / ".config" / "zkpp" / "config.yaml",
    ]

    if path is not None:
        if not Path(path).exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        search_paths = [Path(path)]

    config: RuntimeConfig | None = None
    for candidate in search_paths:
        if candidate.exists():
            config = RuntimeConfig.from_yaml(candidate)
            logger.info(f"Loaded config from {candidate}")
            break

    if config is None:
        config = RuntimeConfig()

    return config.with_env_overrides()


def build_tier_table(config: RuntimeConfig) -> TierTable:
    return TierTable.from_dicts(config.tiers.ranges)


def build_ledger(config: RuntimeConfig) -> LedgerClient:
    """HTTP gateway when a ledger URL is configured, else in-memory settlement."""
    if config.ledger.url:
        logger.info(f"Using ledger gateway at {config.ledger.url}")
        return HttpLedgerClient(config.ledger.url, timeout=config.ledger.timeout)
    logger.info("No ledger URL configured; using in-memory settlement ledger")
    table = build_tier_table(config)
    return InMemoryLedger(
        prover=DevelopmentProver(depth=config.oracle.tree_depth, table=table),
        table=table,
        depth=config.oracle.tree_depth,
    )


def build_publisher(config: RuntimeConfig) -> Optional[BlobPublisher]:
    if not config.blob.enabled:
        return None
    if config.blob.publish_url:
        return HttpBlobPublisher(config.blob.publish_url, timeout=config.ledger.timeout)
    return InMemoryBlobPublisher()


def build_oracle(config: RuntimeConfig) -> PriceOracle:
    """Wire a PriceOracle from configuration. Does not initialize it."""
    products = load_products(config.oracle.products_path)
    store = OracleStateStore(config.oracle.state_path, depth=config.oracle.tree_depth)
    retry = RetryExecutor(
        max_attempts=config.retry.max_attempts,
        base_delay=config.retry.base_delay,
        multiplier=config.retry.multiplier,
        max_delay=config.retry.max_delay,
    )
    return PriceOracle(
        products,
        store,
        depth=config.oracle.tree_depth,
        ledger=build_ledger(config),
        publisher=build_publisher(config),
        retry=retry,
        background_sync=config.oracle.background_sync,
        codec=BlobCodec(config.blob.chunk_count, config.blob.chunk_width),
    )


def get_oracle(request: Request) -> PriceOracle:
    """FastAPI dependency: the application's oracle."""
    oracle: Optional[PriceOracle] = getattr(request.app.state, "oracle", None)
    if oracle is None or not oracle.is_initialized:
        raise OracleNotInitializedException()
    return oracle
