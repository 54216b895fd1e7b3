"""
Product Catalog

Loads the fixed product catalog the oracle prices. The catalog is read once
at startup; its order defines leaf order in the Merkle tree.

File format (products.json):
    [
      {"id": "B0BZSD82ZN", "name": "Wireless Earbuds", "basePrice": 547200000},
      ...
    ]
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.crypto.field import FIELD_MODULUS, canonicalize_product_id

logger = logging.getLogger(__name__)


class CatalogError(ValueError):
    """Raised when the product catalog cannot be loaded or is inconsistent."""


class Product(BaseModel):
    """Immutable catalog entry. Prices are in the smallest currency unit."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Canonical product id (trimmed, upper-case)")
    name: str = Field(..., description="Display name")
    base_price: int = Field(..., alias="basePrice", ge=0, description="Reset price")

    @field_validator("id")
    @classmethod
    def _canonical_id(cls, v: str) -> str:
        canonical = canonicalize_product_id(v)
        if not canonical:
            raise ValueError("Product id must not be blank")
        return canonical

    @field_validator("base_price")
    @classmethod
    def _price_in_field(cls, v: int) -> int:
        if v >= FIELD_MODULUS:
            raise ValueError("base price exceeds the field modulus")
        return v


def build_catalog(entries: Iterable[dict[str, Any] | Product]) -> list[Product]:
    """
    Validate raw entries into Products, preserving order.

    Raises:
        CatalogError: invalid entry or duplicate canonical id
    """
    products: list[Product] = []
    seen: set[str] = set()
    for i, entry in enumerate(entries):
        try:
            product = entry if isinstance(entry, Product) else Product.model_validate(entry)
        except ValidationError as e:
            raise CatalogError(f"Invalid product at position {i}: {e}") from e
        if product.id in seen:
            raise CatalogError(f"Duplicate product id {product.id}")
        seen.add(product.id)
        products.append(product)
    return products


def load_products(path: str | Path) -> list[Product]:
    """
    Load the catalog from a JSON file.

    Raises:
        CatalogError: file missing, unparsable, or with invalid entries
    """
    path = Path(path)
    if not path.exists():
        raise CatalogError(f"Products file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Failed to read products file {path}: {e}") from e

    if isinstance(data, dict) and "products" in data:
        data = data["products"]
    if not isinstance(data, list):
        raise CatalogError(f"Products file {path} must contain a JSON array")

    products = build_catalog(data)
    logger.info(f"Loaded {len(products)} products from {path}")
    return products


__all__ = [
    "CatalogError",
    "Product",
    "build_catalog",
    "load_products",
]
