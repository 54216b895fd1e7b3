"""API request and response models."""

from api.models.requests import DropPricesRequest, SetPriceRequest
from api.models.responses import (
    DropImpact,
    DropPricesResponse,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    MerkleRootResponse,
    MutationResponse,
    PricesMeta,
    PricesResponse,
)

__all__ = [
    "DropPricesRequest",
    "SetPriceRequest",
    "DropImpact",
    "DropPricesResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "MerkleRootResponse",
    "MutationResponse",
    "PricesMeta",
    "PricesResponse",
]
