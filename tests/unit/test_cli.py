"""
CLI Unit Tests
Tests for zkpp_cli/main.py and the oracle and claim subcommands
"""
import json

import pytest

from claims.commitment import load_commitment
from claims.tiers import USDC
from zkpp_cli.main import (
    EXIT_INVALID_INPUT,
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    EXIT_VERIFICATION_FAILED,
    main,
)
from fixtures.common import ENV_VARS, INVOICE_DATE, write_products


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_path(tmp_path):
    products = write_products(tmp_path / "products.json")
    path = tmp_path / "zkpp.yaml"
    path.write_text(
        "oracle:\n"
        f"  products_path: {products}\n"
        f"  state_path: {tmp_path / 'merkle-tree.json'}\n"
        "retry:\n"
        "  base_delay: 0\n"
        "blob:\n"
        "  enabled: false\n"
    )
    return path


def run(config_path, *argv):
    return main(["--config", str(config_path), *argv])


class TestMain:
    """Tests for argument handling."""

    def test_no_command(self, capsys):
        """Without a command help is printed and exit is 1."""
        assert main([]) == EXIT_RUNTIME_ERROR
        assert "usage" in capsys.readouterr().out

    def test_missing_config(self, tmp_path, capsys):
        """An explicit config that does not exist fails cleanly."""
        assert main(["--config", str(tmp_path / "nope.yaml"), "prices"]) == EXIT_RUNTIME_ERROR
        assert "Error loading configuration" in capsys.readouterr().err

    def test_bad_percentage(self, config_path):
        """argparse rejects percentages outside (0, 100]."""
        with pytest.raises(SystemExit):
            run(config_path, "drop-prices", "150")

    def test_unknown_product(self, config_path, capsys):
        """Unknown products exit 2 with a message."""
        assert run(config_path, "proof", "NOPE") == EXIT_INVALID_INPUT
        assert "NOPE" in capsys.readouterr().err

    def test_price_outside_field(self, config_path, capsys):
        """Prices that are not field elements exit 2."""
        assert run(config_path, "set-price", "LAPTOP", str(2 ** 300)) == EXIT_INVALID_INPUT
        assert "Error" in capsys.readouterr().err


class TestOracleCommands:
    """Tests for the oracle subcommands."""

    def test_prices_json(self, config_path, capsys):
        """prices --json lists the catalog."""
        assert run(config_path, "prices", "--json") == EXIT_SUCCESS
        data = json.loads(capsys.readouterr().out)
        assert [p["id"] for p in data["prices"]] == ["LAPTOP", "PHONE", "HEADPHONES", "TABLET"]

    def test_set_price_persists(self, config_path, capsys):
        """Mutations survive into the next invocation."""
        assert run(config_path, "set-price", "laptop", str(1000 * USDC)) == EXIT_SUCCESS
        capsys.readouterr()
        run(config_path, "prices", "--json")
        data = json.loads(capsys.readouterr().out)
        assert data["prices"][0]["currentPrice"] == 1000 * USDC

    def test_drop_and_reset(self, config_path, capsys):
        """drop-prices then reset returns to the base root."""
        run(config_path, "prices", "--json")
        base_root = json.loads(capsys.readouterr().out)["merkleRoot"]
        assert run(config_path, "drop-prices", "10") == EXIT_SUCCESS
        assert run(config_path, "reset") == EXIT_SUCCESS
        capsys.readouterr()
        run(config_path, "prices", "--json")
        assert json.loads(capsys.readouterr().out)["merkleRoot"] == base_root

    def test_rebuild(self, config_path, capsys):
        """rebuild discards mutations."""
        run(config_path, "set-price", "PHONE", "1")
        assert run(config_path, "rebuild") == EXIT_SUCCESS
        capsys.readouterr()
        run(config_path, "prices", "--json")
        assert json.loads(capsys.readouterr().out)["prices"][1]["currentPrice"] == 800 * USDC

    def test_proof_verify(self, config_path, capsys):
        """proof --verify exits 0 for a served proof."""
        assert run(config_path, "proof", "TABLET", "--verify", "--json") == EXIT_SUCCESS
        data = json.loads(capsys.readouterr().out)
        assert data["verified"] is True
        assert data["leafIndex"] == 3

    def test_export(self, config_path, tmp_path):
        """export --out writes the snapshot."""
        out = tmp_path / "export.json"
        assert run(config_path, "export", "--out", str(out)) == EXIT_SUCCESS
        assert set(json.loads(out.read_text())["currentPrices"]) == {
            "LAPTOP", "PHONE", "HEADPHONES", "TABLET",
        }

    def test_status(self, config_path, capsys):
        """The in-memory ledger is brought in step."""
        assert run(config_path, "status", "--json") == EXIT_SUCCESS
        assert json.loads(capsys.readouterr().out)["consistent"] is True


class TestClaimCommands:
    """Tests for commit and simulate."""

    def _commit(self, config_path, out, price=1200 * USDC):
        return run(
            config_path, "commit",
            "--order", "ORD-77", "--product", "LAPTOP",
            "--price", str(price), "--date", str(INVOICE_DATE),
            "--out", str(out),
        )

    def test_commit(self, config_path, tmp_path):
        """commit writes an opening for the purchase."""
        out = tmp_path / "c.json"
        assert self._commit(config_path, out) == EXIT_SUCCESS
        record = load_commitment(out)
        assert record.product_id == "LAPTOP"
        assert record.selected_tier == 3
        assert record.invoice_date == INVOICE_DATE

    def test_simulate_paid(self, config_path, tmp_path, capsys):
        """After a drop the simulated claim pays the difference."""
        out = tmp_path / "c.json"
        self._commit(config_path, out)
        run(config_path, "set-price", "LAPTOP", str(1000 * USDC))
        capsys.readouterr()
        assert run(config_path, "simulate", str(out), "--json") == EXIT_SUCCESS
        data = json.loads(capsys.readouterr().out)
        assert data["receipt"]["accepted"] is True
        assert data["receipt"]["payout"] == 200 * USDC

    def test_simulate_not_paid(self, config_path, tmp_path):
        """Without a drop the simulated claim exits 2."""
        out = tmp_path / "c.json"
        self._commit(config_path, out)
        assert run(config_path, "simulate", str(out)) == EXIT_VERIFICATION_FAILED
