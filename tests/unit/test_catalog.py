"""
Product Catalog Unit Tests
Tests for oracle/catalog.py
"""
import json

import pytest

from core.crypto.field import FIELD_MODULUS
from oracle import CatalogError, Product, build_catalog, load_products


class TestProduct:
    """Tests for the Product model."""

    def test_id_canonicalized(self):
        """Ids are trimmed and upper-cased."""
        p = Product(id=" laptop ", name="Laptop", base_price=1)
        assert p.id == "LAPTOP"

    def test_wire_alias(self):
        """basePrice is accepted."""
        p = Product.model_validate({"id": "A", "name": "A", "basePrice": 100})
        assert p.base_price == 100

    def test_negative_price_rejected(self):
        """Base prices must be non-negative."""
        with pytest.raises(ValueError):
            Product(id="A", name="A", base_price=-1)

    def test_price_beyond_field_rejected(self):
        """Base prices must be field elements."""
        with pytest.raises(ValueError):
            Product(id="A", name="A", base_price=FIELD_MODULUS)

    def test_blank_id_rejected(self):
        """Whitespace-only ids are rejected."""
        with pytest.raises(ValueError):
            Product(id="   ", name="A", base_price=1)


class TestBuildCatalog:
    """Tests for build_catalog and load_products."""

    def test_order_preserved(self):
        """Catalog order is file order."""
        products = build_catalog([
            {"id": "B", "name": "B", "basePrice": 1},
            {"id": "A", "name": "A", "basePrice": 2},
        ])
        assert [p.id for p in products] == ["B", "A"]

    def test_duplicate_after_canonicalization(self):
        """'a' and 'A' are the same product."""
        with pytest.raises(CatalogError, match="Duplicate"):
            build_catalog([
                {"id": "a", "name": "A", "basePrice": 1},
                {"id": "A", "name": "A", "basePrice": 2},
            ])

    def test_invalid_entry(self):
        """Entries missing fields raise CatalogError."""
        with pytest.raises(CatalogError):
            build_catalog([{"id": "A"}])

    def test_load_list(self, tmp_path):
        """A bare JSON array loads."""
        path = tmp_path / "products.json"
        path.write_text(json.dumps([{"id": "A", "name": "A", "basePrice": 5}]))
        assert load_products(path)[0].base_price == 5

    def test_load_wrapped(self, tmp_path):
        """{"products": [...]} loads too."""
        path = tmp_path / "products.json"
        path.write_text(json.dumps({"products": [{"id": "A", "name": "A", "basePrice": 5}]}))
        assert len(load_products(path)) == 1

    def test_load_missing(self, tmp_path):
        """A missing file raises CatalogError."""
        with pytest.raises(CatalogError):
            load_products(tmp_path / "absent.json")

    def test_load_not_array(self, tmp_path):
        """Non-array documents raise CatalogError."""
        path = tmp_path / "products.json"
        path.write_text(json.dumps({"id": "A"}))
        with pytest.raises(CatalogError):
            load_products(path)
