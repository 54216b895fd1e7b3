"""
HTTP Ledger Gateway Unit Tests
Tests for ledger/http.py against a fake requests session
"""
import requests
import pytest

from claims.witness import PublicSignals
from core.crypto.field import to_field_hex
from core.errors import (
    ExternalUnavailableException,
    PolicyAlreadyClaimedException,
    PolicyNotFoundException,
    ProofRejectedException,
)
from core.http import HttpClient
from ledger import HttpLedgerClient, LedgerClient
from fixtures.common import FakeResponse, FakeSession

BASE = "http://ledger.test"


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(session):
    return HttpLedgerClient(BASE, client=HttpClient(base_url=BASE, session=session))


def _signals():
    return PublicSignals.from_list([1, 5, 1, 9, 10, 11, 12, 5, 1, 2, 0])


class TestRoot:
    """Tests for root reads and writes."""

    def test_protocol(self, client):
        """HttpLedgerClient satisfies LedgerClient."""
        assert isinstance(client, LedgerClient)

    def test_read_hex_root(self, client, session):
        """Hex roots are parsed."""
        session.queue(FakeResponse(200, {"root": to_field_hex(1234)}))
        assert client.read_root() == 1234
        assert session.calls[0]["method"] == "GET"
        assert session.calls[0]["url"] == f"{BASE}/root"

    def test_read_decimal_root(self, client, session):
        """Decimal roots are accepted too."""
        session.queue(FakeResponse(200, {"root": "77"}))
        assert client.read_root() == 77

    def test_write_root(self, client, session):
        """Writes send the hex root and return a receipt."""
        session.queue(FakeResponse(200, {"root": to_field_hex(5), "changed": False, "txId": "0xabc"}))
        receipt = client.write_root(5)
        assert receipt.root == 5
        assert not receipt.changed
        assert receipt.tx_id == "0xabc"
        assert session.calls[0]["method"] == "PUT"
        assert session.calls[0]["json"] == {"root": to_field_hex(5)}

    def test_write_root_empty_acknowledgement(self, client, session):
        """A 204 with no body acknowledges the requested root."""
        session.queue(FakeResponse(204, b""))
        receipt = client.write_root(5)
        assert receipt.root == 5
        assert receipt.changed
        assert receipt.tx_id == ""

    def test_write_root_without_root_field(self, client, session):
        """A receipt body that omits the root falls back to the requested one."""
        session.queue(FakeResponse(200, {"txId": "0xdef"}))
        receipt = client.write_root(9)
        assert receipt.root == 9
        assert receipt.tx_id == "0xdef"

    def test_write_root_non_json_body(self, client, session):
        """A non-JSON acknowledgement is treated as unavailable."""
        session.queue(FakeResponse(200, "OK"))
        with pytest.raises(ExternalUnavailableException, match="Malformed"):
            client.write_root(5)

    def test_write_root_list_body(self, client, session):
        """A JSON body that is not an object is treated as unavailable."""
        session.queue(FakeResponse(200, [1, 2]))
        with pytest.raises(ExternalUnavailableException, match="expected an object"):
            client.write_root(5)

    def test_malformed_root(self, client, session):
        """A response without a usable root is treated as unavailable."""
        session.queue(FakeResponse(200, {"value": 1}))
        with pytest.raises(ExternalUnavailableException, match="Malformed"):
            client.read_root()

    def test_server_error(self, client, session):
        """5xx responses are retryable."""
        session.queue(FakeResponse(503, {"error": "down"}))
        with pytest.raises(ExternalUnavailableException) as exc:
            client.read_root()
        assert exc.value.retryable

    def test_transport_error(self, client, session):
        """Connection failures become ExternalUnavailableException."""
        session.queue(requests.ConnectionError("refused"))
        with pytest.raises(ExternalUnavailableException):
            client.read_root()


class TestClaims:
    """Tests for claim submission."""

    def test_accepted(self, client, session):
        """Receipts are built from the gateway response."""
        session.queue(FakeResponse(200, {"accepted": True, "payout": 5, "txId": "t1"}))
        receipt = client.submit_claim(1, {"scheme": "development"}, _signals())
        assert receipt.accepted
        assert receipt.payout == 5
        body = session.calls[0]["json"]
        assert body["policyId"] == 1
        assert body["publicSignals"] == _signals().to_strings()

    def test_malformed_receipt(self, client, session):
        """A non-object claim body is treated as unavailable."""
        session.queue(FakeResponse(200, ["accepted"]))
        with pytest.raises(ExternalUnavailableException):
            client.submit_claim(1, {}, _signals())

    def test_not_found(self, client, session):
        """404 maps to PolicyNotFoundException."""
        session.queue(FakeResponse(404, {}))
        with pytest.raises(PolicyNotFoundException):
            client.submit_claim(1, {}, _signals())

    def test_already_claimed(self, client, session):
        """409 maps to PolicyAlreadyClaimedException."""
        session.queue(FakeResponse(409, {}))
        with pytest.raises(PolicyAlreadyClaimedException):
            client.submit_claim(1, {}, _signals())

    def test_rejected(self, client, session):
        """Other 4xx responses are proof rejections."""
        session.queue(FakeResponse(422, {}))
        with pytest.raises(ProofRejectedException):
            client.submit_claim(1, {}, _signals())

    def test_server_error(self, client, session):
        """5xx during a claim is retryable."""
        session.queue(FakeResponse(500, {}))
        with pytest.raises(ExternalUnavailableException):
            client.submit_claim(1, {}, _signals())
