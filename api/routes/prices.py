"""
Price Routes

Public oracle endpoints: current root, price listing, inclusion proofs and
the demo bulk price drop.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends

from api.deps import get_oracle
from api.models.requests import DropPricesRequest
from api.models.responses import (
    DropImpact,
    DropPricesResponse,
    MerkleRootResponse,
    PricesMeta,
    PricesResponse,
)
from oracle import PriceOracle


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["prices"])


def _now_ms() -> int:
    return int(time.time() * 1000)


@router.get("/merkle-root", response_model=MerkleRootResponse)
def get_merkle_root(oracle: PriceOracle = Depends(get_oracle)) -> MerkleRootResponse:
    """Current Merkle root."""
    return MerkleRootResponse(root=str(oracle.root), timestamp=_now_ms())


@router.get("/prices", response_model=PricesResponse)
def get_prices(oracle: PriceOracle = Depends(get_oracle)) -> PricesResponse:
    """All products with current and base prices."""
    prices = oracle.prices()
    return PricesResponse(
        prices=prices,
        merkle_root=str(oracle.root),
        timestamp=_now_ms(),
        meta=PricesMeta(
            total_products=len(prices),
            changed_products=sum(1 for p in prices if p.current_price != p.base_price),
        ),
    )


@router.get("/merkle-proof/{product_id}")
def get_merkle_proof(product_id: str, oracle: PriceOracle = Depends(get_oracle)) -> dict[str, Any]:
    """Inclusion proof for one product's current price."""
    return oracle.proof_for(product_id).to_wire()


@router.post("/drop-prices", response_model=DropPricesResponse)
def drop_prices(
    request: Optional[DropPricesRequest] = Body(default=None),
    oracle: PriceOracle = Depends(get_oracle),
) -> DropPricesResponse:
    """Drop every price by a percentage (default 20, range 1-50)."""
    percentage = request.percentage if request is not None else DropPricesRequest().percentage

    old_root = oracle.root
    old_value = sum(p.current_price for p in oracle.prices())

    new_root = oracle.drop_all_prices(percentage)

    new_prices = oracle.prices()
    new_value = sum(p.current_price for p in new_prices)
    actual = (old_value - new_value) / old_value * 100 if old_value else 0.0

    logger.info(f"Dropped all prices by {percentage}%: root {old_root} -> {new_root}")
    return DropPricesResponse(
        message=f"All prices dropped by {percentage:g}%",
        new_root=str(new_root),
        prices=new_prices,
        impact=DropImpact(
            requested_drop=percentage,
            actual_drop=round(actual, 4),
            old_total_value=old_value,
            new_total_value=new_value,
            value_lost=old_value - new_value,
        ),
        root_changed=old_root != new_root,
    )
