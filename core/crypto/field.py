"""
Module 02 - Field Arithmetic and Leaf Hashing
Deterministic hashing over the BN254 scalar field.

Every value that enters the Merkle tree, a commitment or a public signal is
a field element: a Python int in [0, FIELD_MODULUS). Callers reduce large
integers (e.g. a 256-bit digest) with reduce() before hashing; field_hash()
refuses anything outside the field instead of silently wrapping it.

Canonical Rules (Hard Contracts):
1. Encoding: DOMAIN_TAG || arity (1 byte) || each element as 32 big-endian bytes
2. Digest: sha256(encoding) interpreted big-endian, reduced mod FIELD_MODULUS
3. Product identity: product_hash(id) = field_hash(reduce(generic_hash(canonical id)))
4. Leaf: leaf_hash(product_hash, price) = field_hash(product_hash, price)
5. The zero element (0) is the padding sentinel for empty tree slots
"""
from __future__ import annotations

from typing import Callable

from core.crypto.hashing import sha256
from core.errors import FieldOverflowException


# BN254 scalar field order (the field circom/snarkjs circuits work over)
FIELD_MODULUS: int = (
    21888242871839275222246405745257275088548364400416034343698204186575808495617
)

# Bytes used to encode one field element
FIELD_BYTES: int = 32

# Largest arity accepted by field_hash (matches the circuit hash templates)
MAX_ARITY: int = 16

ZERO: int = 0

DOMAIN_TAG: bytes = b"zkpp.field.v1"

FieldHasher = Callable[..., int]


def is_field_element(value: object) -> bool:
    """True if value is an int (not bool) in [0, FIELD_MODULUS)."""
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 <= value < FIELD_MODULUS
    )


def ensure_field_element(value: object, name: str = "value") -> int:
    """
    Return value unchanged if it is a field element.

    Raises:
        FieldOverflowException: If value is not an int in [0, FIELD_MODULUS)
    """
    if not is_field_element(value):
        raise FieldOverflowException(
            f"{name} is not a field element: {value!r}",
            details={"name": name, "value": str(value)},
        )
    return value  # type: ignore[return-value]


def reduce(value: int) -> int:
    """Reduce an arbitrary non-negative integer into the field."""
    if value < 0:
        raise FieldOverflowException(
            f"Cannot reduce negative value {value}",
            details={"value": str(value)},
        )
    return value % FIELD_MODULUS


def field_hash(*elements: int) -> int:
    """
    Hash one or more field elements to a field element.

    Args:
        *elements: 1..MAX_ARITY field elements

    Returns:
        Field element in [0, FIELD_MODULUS)

    Raises:
        FieldOverflowException: If an element is outside the field
        ValueError: If called with no elements or too many
    """
    if not elements:
        raise ValueError("field_hash requires at least one element")
    if len(elements) > MAX_ARITY:
        raise ValueError(
            f"field_hash accepts at most {MAX_ARITY} elements, got {len(elements)}"
        )

    encoded = bytearray(DOMAIN_TAG)
    encoded.append(len(elements))
    for i, element in enumerate(elements):
        ensure_field_element(element, f"element[{i}]")
        encoded += element.to_bytes(FIELD_BYTES, "big")

    return int.from_bytes(sha256(bytes(encoded)), "big") % FIELD_MODULUS


def generic_hash(text: str) -> int:
    """256-bit integer digest of a UTF-8 string (not reduced)."""
    return int.from_bytes(sha256(text.encode("utf-8")), "big")


def canonicalize_product_id(product_id: str) -> str:
    """Canonical catalog form of a product id: trimmed and upper-cased."""
    return product_id.strip().upper()


def product_hash(product_id: str) -> int:
    """Field identity of a product, independent of its price."""
    return field_hash(reduce(generic_hash(canonicalize_product_id(product_id))))


def leaf_hash(product_hash_value: int, price: int) -> int:
    """Price-dependent Merkle leaf for one product."""
    return field_hash(product_hash_value, price)


def text_to_field(text: str) -> int:
    """Hash arbitrary text (e.g. an order number) into a field element."""
    return field_hash(reduce(generic_hash(text)))


def to_field_hex(value: int) -> str:
    """0x-prefixed, zero-padded 32-byte hex form of a field element."""
    ensure_field_element(value)
    return "0x" + value.to_bytes(FIELD_BYTES, "big").hex()


def from_field_hex(value: str) -> int:
    """Parse a 0x-prefixed hex string into a field element."""
    if not value.startswith("0x"):
        raise ValueError(f"Hex value must start with '0x': {value[:10]}...")
    return ensure_field_element(int(value, 16))


__all__ = [
    "FIELD_MODULUS",
    "FIELD_BYTES",
    "MAX_ARITY",
    "ZERO",
    "FieldHasher",
    "is_field_element",
    "ensure_field_element",
    "reduce",
    "field_hash",
    "generic_hash",
    "canonicalize_product_id",
    "product_hash",
    "leaf_hash",
    "text_to_field",
    "to_field_hex",
    "from_field_hex",
]
