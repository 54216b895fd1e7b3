"""
Price Oracle

Owns the authoritative price map, the Merkle tree over it and the persisted
snapshot. It is the single writer for all three.

Lifecycle:
    oracle = PriceOracle(products, store, depth=4, ledger=ledger)
    oracle.initialize(InitMode.RESUME)
    oracle.set_price("B0BZSD82ZN", 450_000_000)
    proof = oracle.proof_for("B0BZSD82ZN")

Mutation rules:
- Every mutation runs under one re-entrant lock. A new tree and snapshot
  are built aside, persisted, and only then swapped in, so a failed
  persist leaves prices, tree and snapshot exactly as they were.
- A mutation returns once the local snapshot is durable. Ledger
  reconciliation and blob publication follow (inline, or on a single
  background worker) under a separate sync lock; their failures are
  logged and reported by sync_status(), never raised.
"""

from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from fractions import Fraction
from typing import TYPE_CHECKING, Callable, Optional, Sequence

from core.blob import BlobCodec
from core.canonical import format_datetime_canonical
from core.crypto.field import (
    FieldHasher,
    canonicalize_product_id,
    ensure_field_element,
    field_hash,
    product_hash,
)
from core.errors import (
    CapacityExceededException,
    ExternalUnavailableException,
    FieldOverflowException,
    InvalidPriceException,
    OracleNotInitializedException,
    PayloadTooLargeException,
    PersistenceException,
    ProductNotFoundException,
)
from core.merkle import MerkleEngine
from core.retry import RetryExecutor

from .catalog import Product
from .models import OracleSnapshot, PriceView, ProductProof, SyncStatus
from .publisher import BlobPublisher, PublishReceipt
from .state_store import OracleStateStore

if TYPE_CHECKING:
    from ledger.base import LedgerClient

logger = logging.getLogger(__name__)


class InitMode(str, Enum):
    """How initialize() treats persisted state."""
    RESUME = "resume"
    FORCE_REBUILD = "force_rebuild"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PriceOracle:
    """
    Merkle price oracle over a fixed product catalog.

    Leaf i belongs to products[i]; unused slots hold the zero element.
    """

    def __init__(
        self,
        products: Sequence[Product],
        store: OracleStateStore,
        *,
        depth: int,
        ledger: Optional[LedgerClient] = None,
        publisher: Optional[BlobPublisher] = None,
        retry: Optional[RetryExecutor] = None,
        background_sync: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
        codec: Optional[BlobCodec] = None,
        hasher: FieldHasher = field_hash,
    ) -> None:
        if not products:
            raise ValueError("Product catalog must not be empty")
        capacity = 1 << depth
        if len(products) > capacity:
            raise CapacityExceededException(len(products), capacity)

        self.products: list[Product] = list(products)
        self.store = store
        self.depth = depth
        self.ledger = ledger
        self.publisher = publisher
        self.retry = retry or RetryExecutor()
        self.codec = codec or (BlobCodec() if publisher is not None else None)
        self.hasher = hasher
        self._clock = clock or _utc_now

        self._by_id: dict[str, Product] = {p.id: p for p in self.products}
        self._index: dict[str, int] = {p.id: i for i, p in enumerate(self.products)}
        self._product_hashes: dict[str, int] = {
            p.id: product_hash(p.id) for p in self.products
        }

        self._lock = threading.RLock()
        self._initialized = False
        self._prices: dict[str, int] = {p.id: p.base_price for p in self.products}
        self._leaf_hashes: dict[str, int] = {}
        self._engine: Optional[MerkleEngine] = None
        self._snapshot: Optional[OracleSnapshot] = None

        self._sync_lock = threading.Lock()
        self._sync_status = SyncStatus(message="Not synced yet")
        self._executor: Optional[ThreadPoolExecutor] = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="oracle-sync")
            if background_sync
            else None
        )
        self._pending: Optional[Future] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def capacity(self) -> int:
        return 1 << self.depth

    def initialize(self, mode: InitMode = InitMode.RESUME) -> SyncStatus:
        """
        Load or rebuild state, then reconcile with the ledger once.

        RESUME accepts a stored snapshot only if its prices cover exactly the
        catalog and its leaves match leaves recomputed from those prices;
        anything else falls back to a force rebuild.
        """
        with self._lock:
            if mode == InitMode.FORCE_REBUILD:
                logger.info("Force rebuild requested; resetting to base prices")
                self._force_rebuild_locked()
            else:
                snapshot = self.store.load()
                if snapshot is None:
                    logger.info("No usable saved state; initializing with base prices")
                    self._force_rebuild_locked()
                elif not self._adopt(snapshot):
                    logger.warning(
                        "Saved state does not match the catalog; recovering with a force rebuild"
                    )
                    self._force_rebuild_locked()
                else:
                    logger.info(f"Resumed saved state with root {self.root}")
            self._initialized = True

        self._schedule_sync()
        return self.sync_status()

    def close(self) -> None:
        """Stop the background sync worker, waiting for queued jobs."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "PriceOracle":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_price(self, product_id: str, price: int) -> int:
        """
        Set one product's price. Returns the new root.

        Raises:
            ProductNotFoundException: unknown id
            FieldOverflowException: negative or non-field price
            PersistenceException: snapshot write failed (state unchanged)
        """
        pid = self._resolve(product_id)
        ensure_field_element(price, "price")
        with self._lock:
            self._require_initialized()
            prices = dict(self._prices)
            prices[pid] = price
            self._apply(prices, f"set {pid} price to {price}")
            root = self._engine.root
        self._schedule_sync()
        return root

    def drop_all_prices(self, percent: int | float) -> int:
        """
        Lower every price by percent, flooring. Returns the new root.

        Raises:
            InvalidPriceException: percent not in (0, 100]
        """
        if isinstance(percent, bool) or not isinstance(percent, (int, float)):
            raise InvalidPriceException(f"Percentage must be a number, got {percent!r}")
        if not (0 < percent <= 100) or not math.isfinite(percent):
            raise InvalidPriceException(
                f"Percentage must be in (0, 100], got {percent}",
                details={"percent": percent},
            )
        keep = 100 - Fraction(percent)
        with self._lock:
            self._require_initialized()
            prices = {
                pid: math.floor(Fraction(price) * keep / 100)
                for pid, price in self._prices.items()
            }
            self._apply(prices, f"drop all prices by {percent}%")
            root = self._engine.root
        self._schedule_sync()
        return root

    def reset_all(self) -> int:
        """Restore every price to its base price. Returns the new root."""
        with self._lock:
            self._require_initialized()
            self._apply(self._base_prices(), "reset all prices")
            root = self._engine.root
        self._schedule_sync()
        return root

    def force_rebuild(self) -> int:
        """Clear persisted state and rebuild from base prices. Returns the new root."""
        with self._lock:
            self._force_rebuild_locked()
            self._initialized = True
            root = self._engine.root
        self._schedule_sync()
        return root

    def rebuild_and_persist(self) -> int:
        """Rebuild the tree from the current prices and persist it."""
        with self._lock:
            self._require_initialized()
            self._apply(dict(self._prices), "rebuild")
            root = self._engine.root
        self._schedule_sync()
        return root

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def root(self) -> int:
        with self._lock:
            if self._engine is None:
                raise OracleNotInitializedException()
            return self._engine.root

    def get_product(self, product_id: str) -> Product:
        return self._by_id[self._resolve(product_id)]

    def current_price(self, product_id: str) -> int:
        pid = self._resolve(product_id)
        with self._lock:
            self._require_initialized()
            return self._prices[pid]

    def proof_for(self, product_id: str) -> ProductProof:
        """
        Inclusion proof for a product's current price.

        Raises:
            ProductNotFoundException: unknown id
            OracleNotInitializedException: initialize() not yet called
        """
        pid = self._resolve(product_id)
        with self._lock:
            self._require_initialized()
            index = self._index[pid]
            proof = self._engine.proof(index)
            price = self._prices[pid]

        product = self._by_id[pid]
        return ProductProof(
            product_id=pid,
            product_name=product.name,
            product_hash=self._product_hashes[pid],
            leaf=proof.leaf,
            leaf_index=index,
            current_price=price,
            siblings=proof.siblings,
            flags=proof.flags,
            root=proof.root,
        )

    def prices(self) -> list[PriceView]:
        with self._lock:
            self._require_initialized()
            current = dict(self._prices)

        views = []
        for p in self.products:
            price = current[p.id]
            change = round((price - p.base_price) / p.base_price * 100, 2) if p.base_price else 0.0
            views.append(PriceView(
                id=p.id,
                name=p.name,
                current_price=price,
                base_price=p.base_price,
                change_pct=change,
            ))
        return views

    def snapshot(self) -> OracleSnapshot:
        with self._lock:
            self._require_initialized()
            return self._snapshot.model_copy(deep=True)

    def export_state(self) -> dict:
        """Snapshot as a JSON-ready dict (wire names)."""
        return self.snapshot().to_wire()

    # ------------------------------------------------------------------
    # Ledger reconciliation and publication
    # ------------------------------------------------------------------

    def reconcile_with_ledger(self) -> SyncStatus:
        """
        Make the ledger root equal the local root.

        The local snapshot is authoritative. An unreachable ledger is logged
        and reported; it is never raised.
        """
        local_root = self.root
        if self.ledger is None:
            status = SyncStatus(
                local_root=local_root,
                consistent=False,
                connected=False,
                message="No ledger configured; running local-only",
            )
            return self._set_status(status)

        try:
            ledger_root = self.retry.run(self.ledger.read_root, description="read ledger root")
            if ledger_root != local_root:
                logger.warning(
                    f"Root mismatch: local={local_root} ledger={ledger_root}; updating ledger"
                )
                receipt = self.retry.run(
                    self.ledger.write_root, local_root, description="write ledger root"
                )
                ledger_root = receipt.root
            status = SyncStatus(
                local_root=local_root,
                ledger_root=ledger_root,
                consistent=ledger_root == local_root,
                connected=True,
                message="Ledger root matches local root",
            )
        except ExternalUnavailableException as e:
            logger.warning(f"Ledger unavailable, continuing local-only: {e.message}")
            status = SyncStatus(
                local_root=local_root,
                ledger_root=self._sync_status.ledger_root,
                consistent=False,
                connected=False,
                message="Ledger unreachable; local snapshot is authoritative",
                last_error=e.message,
            )
        return self._set_status(status)

    def publish_snapshot(self) -> Optional[PublishReceipt]:
        """Pack the persisted snapshot into a blob and publish it."""
        if self.publisher is None or self.codec is None:
            return None

        with self._lock:
            self._require_initialized()
            document = self.store.export_json() or self._snapshot.to_json()
            root = self._engine.root

        try:
            chunks = self.codec.pack(document.encode("utf-8"))
        except PayloadTooLargeException as e:
            logger.error(f"Snapshot not published: {e.message}")
            self._set_status(self._sync_status.model_copy(update={"last_error": e.message}))
            return None

        try:
            receipt = self.retry.run(
                self.publisher.publish, chunks, root, description="publish snapshot blob"
            )
        except ExternalUnavailableException as e:
            logger.warning(f"Snapshot blob publication failed: {e.message}")
            self._set_status(self._sync_status.model_copy(update={"last_error": e.message}))
            return None

        logger.info(f"Snapshot blob {receipt.versioned_hash} published for root {root}")
        self._set_status(
            self._sync_status.model_copy(update={"last_blob_hash": receipt.versioned_hash})
        )
        return receipt

    def sync_status(self) -> SyncStatus:
        """Latest reconciliation result, with the current local root."""
        status = self._sync_status
        local_root = self.root if self._engine is not None else None
        return status.model_copy(update={
            "local_root": local_root,
            "consistent": status.connected and status.ledger_root == local_root,
        })

    def wait_for_sync(self, timeout: Optional[float] = None) -> None:
        """Block until the most recently scheduled sync job has finished."""
        pending = self._pending
        if pending is not None:
            pending.result(timeout=timeout)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, product_id: str) -> str:
        pid = canonicalize_product_id(product_id)
        if pid not in self._by_id:
            raise ProductNotFoundException(pid, available=list(self._by_id))
        return pid

    def _require_initialized(self) -> None:
        if not self._initialized or self._engine is None:
            raise OracleNotInitializedException()

    def _base_prices(self) -> dict[str, int]:
        return {p.id: p.base_price for p in self.products}

    def _force_rebuild_locked(self) -> None:
        self.store.clear()
        self._apply(self._base_prices(), "force rebuild")

    def _adopt(self, snapshot: OracleSnapshot) -> bool:
        """Take over a loaded snapshot if it is consistent with the catalog."""
        if set(snapshot.current_prices) != set(self._by_id):
            return False

        prices = {p.id: snapshot.current_prices[p.id] for p in self.products}
        try:
            leaf_hashes = self._leaf_hashes_for(prices)
        except FieldOverflowException as e:
            logger.warning(f"Saved prices are not valid field elements: {e}")
            return False

        expected = list(leaf_hashes.values())
        expected += [0] * (self.capacity - len(expected))
        if expected != list(snapshot.leaves):
            return False

        engine = MerkleEngine(self.depth, self.hasher)
        engine.build(list(leaf_hashes.values()))
        self._prices = prices
        self._leaf_hashes = leaf_hashes
        self._engine = engine
        self._snapshot = snapshot
        return True

    def _leaf_hashes_for(self, prices: dict[str, int]) -> dict[str, int]:
        return {
            p.id: self.hasher(self._product_hashes[p.id], prices[p.id])
            for p in self.products
        }

    def _apply(self, prices: dict[str, int], reason: str) -> None:
        """Build, persist, then swap in new state. Caller holds the lock."""
        old_root = self._engine.root if self._engine is not None else None

        leaf_hashes = self._leaf_hashes_for(prices)
        engine = MerkleEngine(self.depth, self.hasher)
        engine.build(list(leaf_hashes.values()))
        snapshot = OracleSnapshot(
            leaves=engine.leaves,
            root=engine.root,
            product_hash_map=dict(self._product_hashes),
            leaf_hash_map=leaf_hashes,
            current_prices=prices,
            timestamp=format_datetime_canonical(self._clock()),
        )

        try:
            self.store.save(snapshot)
        except PersistenceException:
            logger.error(f"Persist failed during '{reason}'; state left unchanged")
            raise

        self._prices = prices
        self._leaf_hashes = leaf_hashes
        self._engine = engine
        self._snapshot = snapshot
        logger.info(f"Oracle {reason}: root {old_root} -> {engine.root}")

    def _schedule_sync(self) -> None:
        if self.ledger is None and self.publisher is None:
            return
        if self._executor is None:
            self._sync_job()
            return
        future = self._executor.submit(self._sync_job)
        future.add_done_callback(self._log_sync_failure)
        self._pending = future

    def _sync_job(self) -> None:
        # Runs after the snapshot is durable; nothing here may fail the mutation
        with self._sync_lock:
            try:
                self.reconcile_with_ledger()
            except Exception as e:
                logger.error(f"Ledger reconciliation failed unexpectedly: {e!r}")
                self._set_status(SyncStatus(
                    local_root=self._engine.root if self._engine is not None else None,
                    ledger_root=self._sync_status.ledger_root,
                    consistent=False,
                    connected=False,
                    message="Ledger reconciliation failed; local snapshot is authoritative",
                    last_error=repr(e),
                ))
            try:
                self.publish_snapshot()
            except Exception as e:
                logger.error(f"Snapshot publication failed unexpectedly: {e!r}")
                self._set_status(self._sync_status.model_copy(update={"last_error": repr(e)}))

    @staticmethod
    def _log_sync_failure(future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error(f"Background sync failed: {error!r}")

    def _set_status(self, status: SyncStatus) -> SyncStatus:
        if status.last_blob_hash is None and self._sync_status.last_blob_hash is not None:
            status = status.model_copy(update={"last_blob_hash": self._sync_status.last_blob_hash})
        self._sync_status = status
        return status


__all__ = [
    "InitMode",
    "PriceOracle",
]
