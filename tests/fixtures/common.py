"""
Common test fixtures shared by all modules.

Provides factory functions for the core oracle and claim structures:
- Product catalogs
- PriceOracle instances wired to a temporary store
- Purchase commitments and purchased policies
- Fake HTTP sessions for the requests-backed clients

These are the building blocks used by the conftest fixtures.
"""

from __future__ import annotations

import json as jsonlib
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from claims.commitment import CommitmentRecord, PurchaseDetails, generate_commitment
from claims.tiers import USDC, TierTable
from core.retry import RetryExecutor
from ledger import InMemoryLedger
from oracle import OracleStateStore, PriceOracle, Product, build_catalog


# =============================================================================
# Catalog Factory
# =============================================================================

DEFAULT_PRODUCTS: list[dict[str, Any]] = [
    {"id": "LAPTOP", "name": "Laptop Pro 14", "basePrice": 1200 * USDC},
    {"id": "PHONE", "name": "Smartphone X", "basePrice": 800 * USDC},
    {"id": "HEADPHONES", "name": "Headphones", "basePrice": 300 * USDC},
    {"id": "TABLET", "name": "Tablet Air", "basePrice": 600 * USDC},
]


def make_products(entries: Optional[list[dict[str, Any]]] = None) -> list[Product]:
    """Create a validated catalog (defaults to four products)."""
    return build_catalog(entries if entries is not None else DEFAULT_PRODUCTS)


def write_products(path: Path, entries: Optional[list[dict[str, Any]]] = None) -> Path:
    """Write a products.json file."""
    path.write_text(jsonlib.dumps(entries if entries is not None else DEFAULT_PRODUCTS))
    return path


# =============================================================================
# Oracle Factory
# =============================================================================

def no_wait_retry(max_attempts: int = 3) -> RetryExecutor:
    """RetryExecutor that never sleeps."""
    return RetryExecutor(max_attempts=max_attempts, base_delay=0.0, sleep=lambda _: None)


def fixed_clock(start: Optional[datetime] = None) -> Callable[[], datetime]:
    """Clock that advances one second per call."""
    state = {"now": start or datetime(2026, 1, 1, tzinfo=timezone.utc)}

    def _clock() -> datetime:
        state["now"] += timedelta(seconds=1)
        return state["now"]

    return _clock


def make_oracle(
    state_path: Path,
    products: Optional[list[Product]] = None,
    depth: int = 4,
    ledger: Any = None,
    publisher: Any = None,
    initialize: bool = True,
    **kwargs: Any,
) -> PriceOracle:
    """Create a PriceOracle over a temporary snapshot file."""
    store = OracleStateStore(state_path, depth=depth)
    kwargs.setdefault("retry", no_wait_retry())
    kwargs.setdefault("clock", fixed_clock())
    oracle = PriceOracle(
        products if products is not None else make_products(),
        store,
        depth=depth,
        ledger=ledger,
        publisher=publisher,
        **kwargs,
    )
    if initialize:
        oracle.initialize()
    return oracle


# =============================================================================
# Claim Factories
# =============================================================================

INVOICE_DATE = 1_700_000_000


def make_commitment(
    product_id: str = "LAPTOP",
    invoice_price: int = 1200 * USDC,
    invoice_date: int = INVOICE_DATE,
    order_number: str = "ORD-1001",
    salt: int = 123456789,
    table: Optional[TierTable] = None,
) -> CommitmentRecord:
    """Commitment to a purchase with a fixed salt."""
    details = PurchaseDetails(
        order_number=order_number,
        product_id=product_id,
        invoice_price=invoice_price,
        invoice_date=invoice_date,
    )
    return generate_commitment(details, table or TierTable.default(), salt=salt)


def buy_policy(ledger: InMemoryLedger, record: CommitmentRecord, start_offset: int = 60):
    """Purchase a policy for record at the quoted premium."""
    return ledger.purchase_policy(
        record.commitment,
        ledger.quote(record.selected_tier),
        purchase_timestamp=record.invoice_date + start_offset,
    )


# =============================================================================
# Environment
# =============================================================================

ENV_VARS = [
    "ZKPP_TREE_DEPTH", "ZKPP_STATE_PATH", "ZKPP_PRODUCTS_PATH", "ZKPP_FORCE_REBUILD",
    "ZKPP_BACKGROUND_SYNC", "ZKPP_LEDGER_URL", "ZKPP_BLOB_PUBLISH_URL",
    "ZKPP_RETRY_MAX_ATTEMPTS", "ZKPP_RETRY_BASE_DELAY", "ZKPP_LOG_LEVEL", "ZKPP_PORT",
]


# =============================================================================
# Fake HTTP
# =============================================================================

class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, body: Any = None, url: str = "") -> None:
        self.status_code = status_code
        if isinstance(body, (bytes, str)):
            self.content = body.encode() if isinstance(body, str) else body
        else:
            self.content = jsonlib.dumps(body if body is not None else {}).encode()
        self.headers = {"Content-Type": "application/json"}
        self.url = url
        self.elapsed = timedelta(milliseconds=5)


class FakeSession:
    """
    Records requests and replays queued responses.

    Queue either FakeResponse objects or exceptions (raised on that call).
    """

    def __init__(self, responses: Optional[list[Any]] = None) -> None:
        self.responses = list(responses or [])
        self.calls: list[dict[str, Any]] = []
        self.headers: dict[str, str] = {}

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"Unexpected request {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        item.url = url
        return item

    def close(self) -> None:
        pass
