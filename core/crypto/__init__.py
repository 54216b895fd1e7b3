"""
Core cryptographic utilities.

Module 02 provides byte hashing and field-element hashing.
"""
from .hashing import (
    sha256,
    to_hex,
    from_hex,
)
from .field import (
    FIELD_MODULUS,
    ZERO,
    FieldHasher,
    is_field_element,
    ensure_field_element,
    reduce,
    field_hash,
    generic_hash,
    canonicalize_product_id,
    product_hash,
    leaf_hash,
    text_to_field,
    to_field_hex,
    from_field_hex,
)

__all__ = [
    "sha256",
    "to_hex",
    "from_hex",
    "FIELD_MODULUS",
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
