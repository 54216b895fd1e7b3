"""
Oracle Module

Merkle price oracle: catalog, persisted snapshot, the single-writer
PriceOracle and blob publication of its state.
"""

from .catalog import CatalogError, Product, build_catalog, load_products
from .models import OracleSnapshot, PriceView, ProductProof, SyncStatus
from .price_oracle import InitMode, PriceOracle
from .publisher import BlobPublisher, HttpBlobPublisher, InMemoryBlobPublisher, PublishReceipt
from .state_store import OracleStateStore

__all__ = [
    "CatalogError",
    "Product",
    "build_catalog",
    "load_products",
    "OracleSnapshot",
    "PriceView",
    "ProductProof",
    "SyncStatus",
    "InitMode",
    "PriceOracle",
    "BlobPublisher",
    "HttpBlobPublisher",
    "InMemoryBlobPublisher",
    "PublishReceipt",
    "OracleStateStore",
]
