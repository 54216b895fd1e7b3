"""
Oracle Schemas

Pydantic models for every oracle document that crosses a boundary: the
persisted snapshot, inclusion proofs, price views and sync status.

Field elements are serialized as decimal strings; prices stay JSON numbers.
Wire names are camelCase; Python attribute names are snake_case.
"""

from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
)

from core.crypto.field import FIELD_MODULUS


def _parse_field_element(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not a field element")
    if isinstance(value, str):
        text = value.strip()
        value = int(text, 16) if text.startswith("0x") else int(text)
    if not isinstance(value, int):
        raise ValueError(f"expected integer or decimal string, got {type(value).__name__}")
    if not 0 <= value < FIELD_MODULUS:
        raise ValueError("value is outside the field")
    return value


FieldElement = Annotated[
    int,
    BeforeValidator(_parse_field_element),
    PlainSerializer(lambda v: str(v), return_type=str, when_used="json"),
]


class OracleSnapshot(BaseModel):
    """
    Persisted oracle state.

    Maps are keyed by product id and kept in catalog order.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    leaves: list[FieldElement] = Field(..., description="Padded leaf level")
    root: FieldElement = Field(..., description="Merkle root over leaves")
    product_hash_map: dict[str, FieldElement] = Field(
        ..., alias="productHashMap", description="product id -> product hash"
    )
    leaf_hash_map: dict[str, FieldElement] = Field(
        ..., alias="leafHashMap", description="product id -> leaf hash"
    )
    current_prices: dict[str, Annotated[int, Field(ge=0)]] = Field(
        ..., alias="currentPrices", description="product id -> current price"
    )
    timestamp: str = Field(..., description="ISO-8601 UTC time of the write")

    def to_json(self) -> str:
        """Indented JSON document as written to disk."""
        return self.model_dump_json(by_alias=True, indent=2)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class ProductProof(BaseModel):
    """Inclusion proof for one product's current price."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    product_id: str = Field(..., alias="productId")
    product_name: str = Field(..., alias="productName")
    product_hash: FieldElement = Field(..., alias="productHash")
    leaf: FieldElement
    leaf_index: int = Field(..., alias="leafIndex", ge=0)
    current_price: int = Field(..., alias="currentPrice", ge=0)
    siblings: list[FieldElement]
    flags: list[Annotated[int, Field(ge=0, le=1)]] = Field(
        ..., alias="pathIndices", description="1 = running hash is the right operand"
    )
    root: FieldElement

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class PriceView(BaseModel):
    """Read-only price listing entry."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: str
    name: str
    current_price: int = Field(..., alias="currentPrice")
    base_price: int = Field(..., alias="basePrice")
    change_pct: float = Field(
        ..., alias="change", description="Percent change from base price"
    )


class SyncStatus(BaseModel):
    """Local vs ledger root reconciliation state."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    local_root: Optional[FieldElement] = Field(default=None, alias="localRoot")
    ledger_root: Optional[FieldElement] = Field(default=None, alias="ledgerRoot")
    consistent: bool = False
    connected: bool = False
    message: str = ""
    last_error: Optional[str] = Field(default=None, alias="lastError")
    last_blob_hash: Optional[str] = Field(default=None, alias="lastBlobHash")


__all__ = [
    "FieldElement",
    "OracleSnapshot",
    "ProductProof",
    "PriceView",
    "SyncStatus",
]
