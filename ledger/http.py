"""
HTTP Ledger Gateway

LedgerClient that talks JSON to a ledger gateway service:

    GET  /root    -> {"root": "0x..."}
    PUT  /root    {"root": "0x..."} -> {"root": "0x...", "changed": bool, "txId": str}
    POST /claims  {"policyId", "proof", "publicSignals"} -> claim receipt

Transport failures and 5xx responses become ExternalUnavailableException
so RetryExecutor can retry them.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from claims.witness import PublicSignals
from core.crypto.field import from_field_hex, to_field_hex
from core.errors import (
    ExternalUnavailableException,
    FieldOverflowException,
    PolicyAlreadyClaimedException,
    PolicyNotFoundException,
    ProofRejectedException,
)
from core.http import HttpClient, HttpError, HttpResponse

from .base import ClaimReceipt, LedgerReceipt

logger = logging.getLogger(__name__)


class HttpLedgerClient:
    """Ledger gateway client over HTTP."""

    SERVICE = "ledger"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        client: Optional[HttpClient] = None,
    ) -> None:
        self.client = client or HttpClient(base_url=base_url, timeout=timeout)

    def read_root(self) -> int:
        response = self._call("GET", "/root")
        return self._parse_root(response)

    def write_root(self, root: int) -> LedgerReceipt:
        response = self._call("PUT", "/root", json={"root": to_field_hex(root)})
        if not response.content.strip():
            # Bare acknowledgement (e.g. 204): the gateway accepted our root
            logger.debug(f"Ledger root write {root}: empty acknowledgement")
            return LedgerReceipt(root=root, changed=True, tx_id="")

        data = self._json_object(response, "root write")
        logger.debug(f"Ledger root write {root}: {data}")
        return LedgerReceipt(
            root=self._parse_root(response) if "root" in data else root,
            changed=bool(data.get("changed", True)),
            tx_id=str(data.get("txId", "")),
        )

    def submit_claim(
        self,
        policy_id: int,
        proof: dict[str, Any],
        public_signals: PublicSignals,
    ) -> ClaimReceipt:
        payload = {
            "policyId": policy_id,
            "proof": proof,
            "publicSignals": public_signals.to_strings(),
        }
        response = self._call("POST", "/claims", json=payload, allow_client_errors=True)

        if response.status_code == 404:
            raise PolicyNotFoundException(policy_id)
        if response.status_code == 409:
            raise PolicyAlreadyClaimedException(policy_id)
        if not response.ok:
            raise ProofRejectedException(f"Ledger rejected claim: HTTP {response.status_code}")

        data = self._json_object(response, "claim")
        return ClaimReceipt(
            policy_id=policy_id,
            accepted=bool(data.get("accepted", False)),
            payout=int(data.get("payout", 0)),
            tx_id=data.get("txId"),
            reason=data.get("reason"),
        )

    def close(self) -> None:
        self.client.close()

    def _call(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Any] = None,
        allow_client_errors: bool = False,
    ) -> HttpResponse:
        try:
            response = self.client.request(method, path, json=json)
        except HttpError as e:
            raise ExternalUnavailableException(
                f"Ledger request {method} {path} failed: {e}", service=self.SERVICE
            ) from e

        if response.status_code >= 500:
            raise ExternalUnavailableException(
                f"Ledger returned HTTP {response.status_code} for {method} {path}",
                service=self.SERVICE,
                details={"status_code": response.status_code},
            )
        if not response.ok and not allow_client_errors:
            raise ExternalUnavailableException(
                f"Ledger rejected {method} {path}: HTTP {response.status_code}",
                service=self.SERVICE,
                details={"status_code": response.status_code},
            )
        return response

    def _json_object(self, response: HttpResponse, what: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise ExternalUnavailableException(
                f"Malformed {what} response from ledger: {e}", service=self.SERVICE
            ) from e
        if not isinstance(data, dict):
            raise ExternalUnavailableException(
                f"Malformed {what} response from ledger: expected an object, "
                f"got {type(data).__name__}",
                service=self.SERVICE,
            )
        return data

    def _parse_root(self, response: HttpResponse) -> int:
        try:
            value = response.json()["root"]
            return from_field_hex(value) if isinstance(value, str) and value.startswith("0x") else int(value)
        except (KeyError, TypeError, ValueError, FieldOverflowException) as e:
            raise ExternalUnavailableException(
                f"Malformed root response from ledger: {e}", service=self.SERVICE
            ) from e


__all__ = ["HttpLedgerClient"]
