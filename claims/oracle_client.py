"""
Oracle Client

Claimant-side client for the oracle's public HTTP API. Proofs are shape
checked on arrival so malformed oracle output is caught before witness
preparation.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from core.crypto.field import canonicalize_product_id
from core.errors import (
    ExternalUnavailableException,
    ProductNotFoundException,
    WitnessException,
)
from core.http import HttpClient, HttpError, HttpResponse
from oracle.models import PriceView, ProductProof

logger = logging.getLogger(__name__)


class PriceEligibility(BaseModel):
    """Whether a purchase price is above the oracle's current price."""

    model_config = ConfigDict(extra="forbid")

    eligible: bool
    current_price: int
    price_drop_amount: int
    price_drop_percentage: float


class OracleClient:
    """
    HTTP client for the price oracle.

    Usage:
        client = OracleClient("http://localhost:3001", depth=4)
        if client.check_connection():
            proof = client.get_merkle_proof("B0BZSD82ZN")
    """

    SERVICE = "oracle"

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        *,
        depth: int = 4,
        timeout: float = 10.0,
        client: Optional[HttpClient] = None,
    ) -> None:
        self.depth = depth
        self.client = client or HttpClient(base_url=base_url, timeout=timeout)

    def check_connection(self) -> bool:
        """True if the oracle answers /health."""
        try:
            return bool(self._get_json("/health").get("ok"))
        except ExternalUnavailableException:
            return False

    def get_current_prices(self) -> list[PriceView]:
        data = self._get_json("/api/prices")
        try:
            return [PriceView.model_validate(p) for p in data["prices"]]
        except (KeyError, TypeError, ValidationError) as e:
            raise ExternalUnavailableException(
                f"Malformed price list from oracle: {e}", service=self.SERVICE
            ) from e

    def get_merkle_root(self) -> int:
        data = self._get_json("/api/merkle-root")
        return int(data["root"])

    def get_merkle_proof(self, product_id: str) -> ProductProof:
        """
        Fetch and validate the inclusion proof for a product.

        Raises:
            ProductNotFoundException: oracle does not know the product
            WitnessException: proof is malformed or has the wrong depth
        """
        pid = canonicalize_product_id(product_id)
        response = self._get(f"/api/merkle-proof/{pid}")
        if response.status_code == 404:
            raise ProductNotFoundException(pid)
        self._raise_for_status(response)
        return self.validate_proof(response.json())

    def validate_proof(self, data: Any) -> ProductProof:
        try:
            proof = ProductProof.model_validate(data)
        except ValidationError as e:
            raise WitnessException(f"Malformed Merkle proof: {e}") from e
        if len(proof.siblings) != self.depth or len(proof.flags) != self.depth:
            raise WitnessException(
                f"Proof must have {self.depth} siblings and path flags, "
                f"got {len(proof.siblings)} and {len(proof.flags)}"
            )
        return proof

    def find_product_price(self, product_id: str) -> Optional[PriceView]:
        pid = canonicalize_product_id(product_id)
        for view in self.get_current_prices():
            if view.id == pid:
                return view
        return None

    def check_price_eligibility(self, product_id: str, invoice_price: int) -> PriceEligibility:
        """
        Compare an invoice price with the oracle's current price.

        Raises:
            ProductNotFoundException: product not listed
        """
        view = self.find_product_price(product_id)
        if view is None:
            raise ProductNotFoundException(canonicalize_product_id(product_id))

        drop = invoice_price - view.current_price
        pct = round(drop / invoice_price * 100, 2) if invoice_price else 0.0
        return PriceEligibility(
            eligible=view.current_price < invoice_price,
            current_price=view.current_price,
            price_drop_amount=drop,
            price_drop_percentage=pct,
        )

    def close(self) -> None:
        self.client.close()

    def _get(self, path: str) -> HttpResponse:
        try:
            return self.client.get(path)
        except HttpError as e:
            raise ExternalUnavailableException(
                f"Oracle request {path} failed: {e}", service=self.SERVICE
            ) from e

    def _get_json(self, path: str) -> dict[str, Any]:
        response = self._get(path)
        self._raise_for_status(response)
        try:
            return response.json()
        except ValueError as e:
            raise ExternalUnavailableException(
                f"Oracle returned non-JSON body for {path}", service=self.SERVICE
            ) from e

    def _raise_for_status(self, response: HttpResponse) -> None:
        if not response.ok:
            logger.debug(f"Oracle returned {response.status_code}: {response.text[:200]}")
            raise ExternalUnavailableException(
                f"Oracle returned HTTP {response.status_code}",
                service=self.SERVICE,
                details={"status_code": response.status_code},
            )


__all__ = [
    "PriceEligibility",
    "OracleClient",
]
