"""
API Unit Tests
Tests for the FastAPI routes in api/ using TestClient
"""
import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from claims.tiers import USDC
from core.merkle import MerkleProof
from fixtures.common import make_oracle


@pytest.fixture
def client(oracle):
    with TestClient(create_app(oracle=oracle)) as c:
        yield c


class TestHealth:
    """Tests for health endpoints."""

    def test_health(self, client):
        """/health reports an initialized oracle."""
        data = client.get("/health").json()
        assert data["ok"] is True
        assert data["initialized"] is True

    def test_root(self, client):
        """/ mirrors /health."""
        assert client.get("/").json()["ok"] is True


class TestPrices:
    """Tests for the public price endpoints."""

    def test_merkle_root(self, client, oracle):
        """The root is a decimal string."""
        data = client.get("/api/merkle-root").json()
        assert data["root"] == str(oracle.root)
        assert data["timestamp"] > 0

    def test_prices(self, client):
        """Prices list every product in catalog order."""
        data = client.get("/api/prices").json()
        assert [p["id"] for p in data["prices"]] == ["LAPTOP", "PHONE", "HEADPHONES", "TABLET"]
        assert data["prices"][0]["currentPrice"] == 1200 * USDC
        assert data["meta"] == {"totalProducts": 4, "changedProducts": 0}

    def test_merkle_proof(self, client, oracle):
        """Served proofs verify against the current root."""
        data = client.get("/api/merkle-proof/laptop").json()
        assert data["productId"] == "LAPTOP"
        assert data["root"] == str(oracle.root)
        proof = MerkleProof(
            leaf=int(data["leaf"]),
            index=data["leafIndex"],
            siblings=[int(s) for s in data["siblings"]],
            flags=data["pathIndices"],
            root=int(data["root"]),
        )
        assert proof.verify()

    def test_unknown_product(self, client):
        """Unknown products get a 404 error envelope."""
        response = client.get("/api/merkle-proof/NOPE")
        assert response.status_code == 404
        body = response.json()
        assert body["ok"] is False
        assert body["error"]["code"] == "PRODUCT_NOT_FOUND"

    def test_drop_default(self, client, oracle):
        """An empty body drops every price by 20%."""
        old_root = oracle.root
        data = client.post("/api/drop-prices").json()
        assert data["rootChanged"] is True
        assert data["newRoot"] == str(oracle.root) != str(old_root)
        assert data["impact"]["requestedDrop"] == 20
        assert oracle.current_price("LAPTOP") == 960 * USDC

    def test_drop_percentage(self, client, oracle):
        """An explicit percentage is applied."""
        data = client.post("/api/drop-prices", json={"percentage": 50}).json()
        assert oracle.current_price("PHONE") == 400 * USDC
        assert data["impact"]["valueLost"] == data["impact"]["oldTotalValue"] // 2

    @pytest.mark.parametrize("percentage", [0, 60])
    def test_drop_out_of_range(self, client, oracle, percentage):
        """Percentages outside 1-50 are rejected without changing state."""
        root = oracle.root
        response = client.post("/api/drop-prices", json={"percentage": percentage})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"
        assert oracle.root == root


class TestAdmin:
    """Tests for the admin endpoints."""

    def test_set_price(self, client, oracle):
        """set-price updates one product and reports both roots."""
        old_root = oracle.root
        data = client.post(
            "/api/admin/set-price", json={"productId": "phone", "price": 700 * USDC}
        ).json()
        assert data["oldRoot"] == str(old_root)
        assert data["newRoot"] == str(oracle.root)
        assert oracle.current_price("PHONE") == 700 * USDC

    def test_set_price_negative(self, client):
        """Negative prices fail validation."""
        response = client.post("/api/admin/set-price", json={"productId": "PHONE", "price": -1})
        assert response.status_code == 400

    def test_set_price_unknown(self, client):
        """Unknown products are 404."""
        response = client.post("/api/admin/set-price", json={"productId": "NOPE", "price": 1})
        assert response.status_code == 404

    def test_reset(self, client, oracle):
        """reset-prices restores base prices and the base root."""
        base_root = oracle.root
        client.post("/api/drop-prices")
        data = client.post("/api/admin/reset-prices").json()
        assert data["newRoot"] == str(base_root)

    def test_force_rebuild(self, client, oracle):
        """force-rebuild returns to base prices."""
        base_root = oracle.root
        client.post("/api/admin/set-price", json={"productId": "LAPTOP", "price": 1})
        data = client.post("/api/admin/force-rebuild").json()
        assert data["newRoot"] == str(base_root)
        assert oracle.current_price("LAPTOP") == 1200 * USDC

    def test_export_state(self, client, oracle):
        """export-state returns the snapshot document."""
        data = client.get("/api/admin/export-state").json()
        assert data["root"] == str(oracle.root)
        assert set(data["currentPrices"]) == {"LAPTOP", "PHONE", "HEADPHONES", "TABLET"}

    def test_sync_status(self, client, oracle, ledger):
        """sync-status reports the ledger in step."""
        data = client.get("/api/admin/sync-status").json()
        assert data["consistent"] is True
        assert data["connected"] is True
        assert data["ledgerRoot"] == str(ledger.read_root())


class TestLifespan:
    """Tests for oracle startup inside the app lifespan."""

    def test_uninitialized_oracle_started(self, state_path):
        """A supplied but uninitialized oracle is initialized on startup."""
        oracle = make_oracle(state_path, initialize=False)
        try:
            with TestClient(create_app(oracle=oracle)) as c:
                assert c.get("/health").json()["initialized"] is True
            assert state_path.exists()
        finally:
            oracle.close()

    def test_not_initialized_without_lifespan(self, state_path):
        """Routes report 503 until the oracle is initialized."""
        oracle = make_oracle(state_path, initialize=False)
        try:
            c = TestClient(create_app(oracle=oracle))
            response = c.get("/api/merkle-root")
            assert response.status_code == 503
            assert response.json()["error"]["code"] == "ORACLE_NOT_INITIALIZED"
        finally:
            oracle.close()
