"""
Admin Routes

Operator endpoints for direct price control, recovery and inspection.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from api.deps import get_oracle
from api.models.requests import SetPriceRequest
from api.models.responses import MutationResponse
from oracle import PriceOracle


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/set-price", response_model=MutationResponse)
def set_price(
    request: SetPriceRequest,
    oracle: PriceOracle = Depends(get_oracle),
) -> MutationResponse:
    """Set a single product's price."""
    old_root = oracle.root
    new_root = oracle.set_price(request.product_id, request.price)
    return MutationResponse(
        message=f"Price of {request.product_id.strip().upper()} set to {request.price}",
        old_root=str(old_root),
        new_root=str(new_root),
    )


@router.post("/reset-prices", response_model=MutationResponse)
def reset_prices(oracle: PriceOracle = Depends(get_oracle)) -> MutationResponse:
    """Reset every price to its base price."""
    old_root = oracle.root
    new_root = oracle.reset_all()
    return MutationResponse(
        message="All prices reset to base prices",
        old_root=str(old_root),
        new_root=str(new_root),
    )


@router.post("/force-rebuild", response_model=MutationResponse)
def force_rebuild(oracle: PriceOracle = Depends(get_oracle)) -> MutationResponse:
    """Discard saved state and rebuild the tree from base prices."""
    old_root = oracle.root
    new_root = oracle.force_rebuild()
    logger.warning("Force rebuild triggered through the admin API")
    return MutationResponse(
        message="State cleared and rebuilt from base prices",
        old_root=str(old_root),
        new_root=str(new_root),
    )


@router.get("/export-state")
def export_state(oracle: PriceOracle = Depends(get_oracle)) -> dict[str, Any]:
    """The persisted snapshot document."""
    return oracle.export_state()


@router.get("/sync-status")
def sync_status(oracle: PriceOracle = Depends(get_oracle)) -> dict[str, Any]:
    """Local vs ledger root reconciliation state."""
    return oracle.sync_status().model_dump(by_alias=True, mode="json")
