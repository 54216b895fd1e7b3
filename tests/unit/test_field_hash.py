"""
Field Hash Unit Tests
Tests for core/crypto/field.py

1. Range - every digest is a field element
2. Determinism and arity separation
3. Out-of-field inputs are rejected, never wrapped
4. Product identity is canonicalized and price-independent
"""
import pytest

from core.crypto.field import (
    FIELD_MODULUS,
    MAX_ARITY,
    canonicalize_product_id,
    ensure_field_element,
    field_hash,
    from_field_hex,
    is_field_element,
    leaf_hash,
    product_hash,
    reduce,
    text_to_field,
    to_field_hex,
)
from core.errors import FieldOverflowException


class TestFieldHash:
    """Tests for field_hash."""

    def test_output_in_field(self):
        """Digests are always below the modulus."""
        for i in range(50):
            assert 0 <= field_hash(i, i * 7) < FIELD_MODULUS

    def test_deterministic(self):
        """Same inputs give the same digest."""
        assert field_hash(1, 2, 3) == field_hash(1, 2, 3)

    def test_order_matters(self):
        """Operand order changes the digest."""
        assert field_hash(1, 2) != field_hash(2, 1)

    def test_arity_is_domain_separated(self):
        """A trailing zero is not ignored."""
        assert field_hash(5) != field_hash(5, 0)

    def test_max_arity_accepted(self):
        """MAX_ARITY elements are accepted."""
        field_hash(*range(MAX_ARITY))

    def test_too_many_elements_rejected(self):
        """More than MAX_ARITY elements raise ValueError."""
        with pytest.raises(ValueError):
            field_hash(*range(MAX_ARITY + 1))

    def test_no_elements_rejected(self):
        """An empty call raises ValueError."""
        with pytest.raises(ValueError):
            field_hash()

    def test_modulus_rejected(self):
        """The modulus itself is not a field element."""
        with pytest.raises(FieldOverflowException):
            field_hash(FIELD_MODULUS)

    def test_negative_rejected(self):
        """Negative values are rejected."""
        with pytest.raises(FieldOverflowException):
            field_hash(-1)

    def test_largest_element_accepted(self):
        """FIELD_MODULUS - 1 hashes fine."""
        assert is_field_element(field_hash(FIELD_MODULUS - 1))


class TestFieldElements:
    """Tests for field element helpers."""

    def test_bool_is_not_field_element(self):
        """Booleans are rejected even though they are ints."""
        assert not is_field_element(True)

    def test_ensure_returns_value(self):
        """ensure_field_element passes valid values through."""
        assert ensure_field_element(42) == 42

    def test_reduce_wraps_large_values(self):
        """reduce() maps into the field."""
        assert reduce(FIELD_MODULUS + 5) == 5

    def test_reduce_rejects_negative(self):
        """reduce() refuses negative input."""
        with pytest.raises(FieldOverflowException):
            reduce(-3)

    def test_hex_round_trip(self):
        """to_field_hex/from_field_hex invert each other."""
        value = field_hash(9)
        text = to_field_hex(value)
        assert text.startswith("0x") and len(text) == 66
        assert from_field_hex(text) == value

    def test_from_hex_requires_prefix(self):
        """Unprefixed hex is rejected."""
        with pytest.raises(ValueError):
            from_field_hex("ff")


class TestProductIdentity:
    """Tests for product and leaf hashing."""

    def test_canonicalization(self):
        """Ids are trimmed and upper-cased."""
        assert canonicalize_product_id("  laptop ") == "LAPTOP"

    def test_product_hash_ignores_case_and_whitespace(self):
        """Equivalent ids hash the same."""
        assert product_hash("laptop") == product_hash(" LAPTOP")

    def test_distinct_products_distinct_hashes(self):
        """Different ids hash differently."""
        assert product_hash("LAPTOP") != product_hash("PHONE")

    def test_leaf_depends_on_price(self):
        """A price change changes the leaf."""
        ph = product_hash("LAPTOP")
        assert leaf_hash(ph, 100) != leaf_hash(ph, 99)

    def test_leaf_is_pair_hash(self):
        """leaf_hash is field_hash over (product_hash, price)."""
        ph = product_hash("LAPTOP")
        assert leaf_hash(ph, 100) == field_hash(ph, 100)

    def test_text_to_field_in_range(self):
        """Arbitrary text maps into the field."""
        assert is_field_element(text_to_field("ORD-0001"))
