"""
API Response Models

Pydantic models for API response serialization. Wire names are camelCase.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from oracle.models import PriceView


class HealthResponse(BaseModel):
    """Response for GET /health endpoint."""

    ok: bool = True
    service: str = "zkpp-oracle"
    version: str = "v1"
    initialized: bool = False


class MerkleRootResponse(BaseModel):
    """Response for GET /api/merkle-root."""

    root: str = Field(..., description="Current Merkle root (decimal)")
    timestamp: int = Field(..., description="Server time, unix milliseconds")


class PricesMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_products: int = Field(..., alias="totalProducts")
    changed_products: int = Field(..., alias="changedProducts")


class PricesResponse(BaseModel):
    """Response for GET /api/prices."""

    model_config = ConfigDict(populate_by_name=True)

    prices: list[PriceView]
    merkle_root: str = Field(..., alias="merkleRoot")
    timestamp: int
    meta: PricesMeta


class DropImpact(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    requested_drop: float = Field(..., alias="requestedDrop")
    actual_drop: float = Field(..., alias="actualDrop")
    old_total_value: int = Field(..., alias="oldTotalValue")
    new_total_value: int = Field(..., alias="newTotalValue")
    value_lost: int = Field(..., alias="valueLost")


class DropPricesResponse(BaseModel):
    """Response for POST /api/drop-prices."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    new_root: str = Field(..., alias="newRoot")
    prices: list[PriceView]
    impact: DropImpact
    root_changed: bool = Field(..., alias="rootChanged")


class MutationResponse(BaseModel):
    """Response for administrative price mutations."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    message: str
    old_root: Optional[str] = Field(default=None, alias="oldRoot")
    new_root: str = Field(..., alias="newRoot")


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = False
    error: ErrorDetail = Field(..., description="Error details")
