"""
Pytest configuration and shared fixtures for oracle and claim tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

# Get the project root (parent of tests/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

# Add both project root and tests root to sys.path
for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

_common = importlib.import_module("fixtures.common")

make_products = _common.make_products
make_oracle = _common.make_oracle
make_commitment = _common.make_commitment
buy_policy = _common.buy_policy
no_wait_retry = _common.no_wait_retry


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture
def products():
    """Provide the default four-product catalog."""
    return make_products()


@pytest.fixture
def state_path(tmp_path):
    """Provide a snapshot path inside a temporary directory."""
    return tmp_path / "merkle-tree.json"


@pytest.fixture
def ledger():
    """Provide an in-memory settlement ledger holding the zero root."""
    from ledger import InMemoryLedger
    return InMemoryLedger(depth=4)


@pytest.fixture
def publisher():
    """Provide an in-memory blob publisher."""
    from oracle import InMemoryBlobPublisher
    return InMemoryBlobPublisher()


@pytest.fixture
def oracle(state_path, products, ledger, publisher):
    """Provide an initialized depth-4 oracle synced to the in-memory ledger."""
    o = make_oracle(state_path, products, ledger=ledger, publisher=publisher)
    yield o
    o.close()


@pytest.fixture
def tier_table():
    """Provide the default premium tier table."""
    from claims.tiers import TierTable
    return TierTable.default()


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
