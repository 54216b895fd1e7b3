"""
API Request Models

Pydantic models for API request validation.
"""

from pydantic import BaseModel, ConfigDict, Field


class DropPricesRequest(BaseModel):
    """Request body for POST /api/drop-prices."""

    percentage: float = Field(
        default=20,
        ge=1,
        le=50,
        description="Percent to drop every price by (1-50)",
    )


class SetPriceRequest(BaseModel):
    """Request body for POST /api/admin/set-price."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId", min_length=1)
    price: int = Field(..., ge=0, description="New price in 6-decimal units")
