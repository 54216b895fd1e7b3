"""
Runtime Configuration

Central configuration for the price oracle, ledger connection, retry
policy, blob publication, tier table and HTTP server.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()


def _default_tier_ranges() -> list[dict[str, Any]]:
    # Prices and premiums in 6-decimal units (1 USDC = 1_000_000)
    return [
        {"tier_id": 1, "min_price": 0, "max_price": 499_999_999, "base_premium": 25_000_000},
        {"tier_id": 2, "min_price": 500_000_000, "max_price": 1_000_000_000, "base_premium": 50_000_000},
        {"tier_id": 3, "min_price": 1_000_000_001, "max_price": None, "base_premium": 100_000_000},
    ]


def _env_bool(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class OracleConfig:
    """Configuration for the price oracle and its persisted state."""
    tree_depth: int = 4
    state_path: str = "./merkle-tree.json"
    products_path: str = "./products.json"
    force_rebuild: bool = False
    background_sync: bool = False


@dataclass
class LedgerConfig:
    """Configuration for the ledger gateway. No url means in-memory ledger."""
    url: Optional[str] = None
    timeout: float = 30.0


@dataclass
class RetryConfig:
    """Configuration for retries against external collaborators."""
    max_attempts: int = 3
    base_delay: float = 3.0
    multiplier: float = 2.0
    max_delay: float = 30.0


@dataclass
class BlobConfig:
    """Configuration for snapshot blob publication."""
    enabled: bool = True
    chunk_count: int = 4096
    chunk_width: int = 32
    publish_url: Optional[str] = None


@dataclass
class TierConfig:
    """Tier table as plain dicts; validated by claims.tiers.TierTable."""
    ranges: list[dict[str, Any]] = field(default_factory=_default_tier_ranges)


@dataclass
class ServerConfig:
    """Configuration for the administrative HTTP server."""
    host: str = "127.0.0.1"
    port: int = 3001


@dataclass
class RuntimeConfig:
    """
    Complete runtime configuration for the price-protection oracle.

    Can be loaded from:
    - Environment variables
    - YAML file
    - Programmatic construction
    """
    oracle: OracleConfig = field(default_factory=OracleConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    blob: BlobConfig = field(default_factory=BlobConfig)
    tiers: TierConfig = field(default_factory=TierConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        This is the SINGLE source of truth for all env var reading.

        Supported variables:
        - ZKPP_TREE_DEPTH: Merkle tree depth
        - ZKPP_STATE_PATH: Snapshot file path
        - ZKPP_PRODUCTS_PATH: Product catalog file path
        - ZKPP_FORCE_REBUILD: Rebuild from base prices at startup (true/false)
        - ZKPP_BACKGROUND_SYNC: Run ledger sync on a worker thread (true/false)
        - ZKPP_LEDGER_URL: Ledger gateway base URL
        - ZKPP_BLOB_PUBLISH_URL: Blob publication endpoint
        - ZKPP_RETRY_MAX_ATTEMPTS: Attempts per external call
        - ZKPP_RETRY_BASE_DELAY: Initial retry delay in seconds
        - ZKPP_LOG_LEVEL: Logging level name
        - ZKPP_PORT: HTTP server port
        """
        overrides: dict[str, Any] = {}

        # Oracle settings
        if os.getenv("ZKPP_TREE_DEPTH"):
            overrides.setdefault("oracle", {})["tree_depth"] = int(os.getenv("ZKPP_TREE_DEPTH"))
        if os.getenv("ZKPP_STATE_PATH"):
            overrides.setdefault("oracle", {})["state_path"] = os.getenv("ZKPP_STATE_PATH")
        if os.getenv("ZKPP_PRODUCTS_PATH"):
            overrides.setdefault("oracle", {})["products_path"] = os.getenv("ZKPP_PRODUCTS_PATH")
        if os.getenv("ZKPP_FORCE_REBUILD"):
            overrides.setdefault("oracle", {})["force_rebuild"] = _env_bool("ZKPP_FORCE_REBUILD")
        if os.getenv("ZKPP_BACKGROUND_SYNC"):
            overrides.setdefault("oracle", {})["background_sync"] = _env_bool("ZKPP_BACKGROUND_SYNC")

        # Ledger and blob endpoints
        if os.getenv("ZKPP_LEDGER_URL"):
            overrides.setdefault("ledger", {})["url"] = os.getenv("ZKPP_LEDGER_URL")
        if os.getenv("ZKPP_BLOB_PUBLISH_URL"):
            overrides.setdefault("blob", {})["publish_url"] = os.getenv("ZKPP_BLOB_PUBLISH_URL")

        # Retry settings
        if os.getenv("ZKPP_RETRY_MAX_ATTEMPTS"):
            overrides.setdefault("retry", {})["max_attempts"] = int(os.getenv("ZKPP_RETRY_MAX_ATTEMPTS"))
        if os.getenv("ZKPP_RETRY_BASE_DELAY"):
            overrides.setdefault("retry", {})["base_delay"] = float(os.getenv("ZKPP_RETRY_BASE_DELAY"))

        if os.getenv("ZKPP_LOG_LEVEL"):
            overrides["log_level"] = os.getenv("ZKPP_LOG_LEVEL").upper()
        if os.getenv("ZKPP_PORT"):
            overrides.setdefault("server", {})["port"] = int(os.getenv("ZKPP_PORT"))

        return overrides

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """
        Load configuration purely from environment variables.

        Uses defaults for any values not specified in env vars.
        """
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a YAML file."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeConfig":
        """Load configuration from a dictionary (supports partial data)."""
        oracle_data = data.get("oracle", {})
        ledger_data = data.get("ledger", {})
        retry_data = data.get("retry", {})
        blob_data = data.get("blob", {})
        tiers_data = data.get("tiers", {})
        server_data = data.get("server", {})

        tiers = TierConfig(ranges=list(tiers_data["ranges"])) if tiers_data.get("ranges") else TierConfig()

        return cls(
            oracle=OracleConfig(**oracle_data) if oracle_data else OracleConfig(),
            ledger=LedgerConfig(**ledger_data) if ledger_data else LedgerConfig(),
            retry=RetryConfig(**retry_data) if retry_data else RetryConfig(),
            blob=BlobConfig(**blob_data) if blob_data else BlobConfig(),
            tiers=tiers,
            server=ServerConfig(**server_data) if server_data else ServerConfig(),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )

    def with_env_overrides(self) -> "RuntimeConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)
        for section in ("oracle", "ledger", "retry", "blob", "server"):
            for key, value in overrides.get(section, {}).items():
                setattr(getattr(new_config, section), key, value)

        if "log_level" in overrides:
            new_config.log_level = overrides["log_level"]

        return new_config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return {
            "oracle": {
                "tree_depth": self.oracle.tree_depth,
                "state_path": self.oracle.state_path,
                "products_path": self.oracle.products_path,
                "force_rebuild": self.oracle.force_rebuild,
                "background_sync": self.oracle.background_sync,
            },
            "ledger": {
                "url": self.ledger.url,
                "timeout": self.ledger.timeout,
            },
            "retry": {
                "max_attempts": self.retry.max_attempts,
                "base_delay": self.retry.base_delay,
                "multiplier": self.retry.multiplier,
                "max_delay": self.retry.max_delay,
            },
            "blob": {
                "enabled": self.blob.enabled,
                "chunk_count": self.blob.chunk_count,
                "chunk_width": self.blob.chunk_width,
                "publish_url": self.blob.publish_url,
            },
            "tiers": {
                "ranges": [dict(r) for r in self.tiers.ranges],
            },
            "server": {
                "host": self.server.host,
                "port": self.server.port,
            },
            "log_level": self.log_level,
        }
