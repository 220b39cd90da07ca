# tests/test_cli.py
import hashlib
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from tapesig.cli.main import TX_ENV_VAR, app

from conftest import BOB_TX, CHILD_ADDR, PARENT_ADDR, PLAIN_TAPE_HASH, TAPE_HASH

runner = CliRunner()

KNOWN_SIG = "IF4c9E2d7d0eqkR7apt8ZGXpthYhb4eF6ifLp5gXbIsRTw5GzNmK2H7kMjP1nYez0l15R5fLz48HBfqMJEocHGE="


@pytest.fixture
def tx_file(tmp_path: Path) -> Path:
    path = tmp_path / "tx.json"
    path.write_text(json.dumps(BOB_TX))
    return path


def test_hash_no_tx(monkeypatch):
    monkeypatch.delenv(TX_ENV_VAR, raising=False)
    result = runner.invoke(app, ["hash", "1"])
    assert result.exit_code == 1
    assert "No transaction document" in result.stdout


def test_hash_missing_file(tmp_path):
    result = runner.invoke(app, ["hash", "1", "--tx", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
    assert "not found" in result.stdout


def test_hash_bad_document(tmp_path):
    path = tmp_path / "tx.json"
    path.write_text(json.dumps({"in": []}))
    result = runner.invoke(app, ["hash", "1", "--tx", str(path)])
    assert result.exit_code == 1


def test_hash(tx_file):
    result = runner.invoke(app, ["hash", "1", "--tx", str(tx_file)])
    assert result.exit_code == 0
    assert result.stdout.strip() == TAPE_HASH


def test_hash_plain_policy(tx_file):
    result = runner.invoke(app, ["hash", "1", "--tx", str(tx_file), "--policy", "plain"])
    assert result.exit_code == 0
    assert result.stdout.strip() == PLAIN_TAPE_HASH


def test_hash_unresolved(tx_file):
    result = runner.invoke(app, ["hash", "7", "--tx", str(tx_file)])
    assert result.exit_code == 1
    assert "could not be resolved" in result.stdout


def test_hash_from_env(tx_file, monkeypatch):
    monkeypatch.setenv(TX_ENV_VAR, str(tx_file))
    result = runner.invoke(app, ["hash", "1"])
    assert result.exit_code == 0
    assert result.stdout.strip() == TAPE_HASH


def test_verify_unverified_json(tx_file):
    result = runner.invoke(
        app, ["verify", "1", "##dummy_sig1##", PARENT_ADDR, "-t", "1599495325", "--tx", str(tx_file), "--json"]
    )
    assert result.exit_code == 1
    out = json.loads(result.stdout)
    sig = out["signatures"][0]
    assert sig["hash"] == TAPE_HASH
    assert sig["timestamp"] == 1599495325
    assert sig["verified"] is False


def test_verify_known_signature(tx_file):
    result = runner.invoke(app, ["verify", "1", KNOWN_SIG, PARENT_ADDR, "--tx", str(tx_file)])
    assert result.exit_code == 0


def test_verify_blank_pubkey(tx_file):
    result = runner.invoke(app, ["verify", "1", "##dummy_sig1##", "", "--tx", str(tx_file)])
    assert result.exit_code == 1
    assert "pubkey" in result.stdout


def test_chain_hash_only_json(tx_file):
    result = runner.invoke(
        app,
        ["chain", "1", "##dummy_sig1##", PARENT_ADDR, "##dummy_sig2##", CHILD_ADDR,
         "--variant", "hash_only", "--tx", str(tx_file), "--json"],
    )
    assert result.exit_code == 1
    out = json.loads(result.stdout)
    assert out["signatures"]["parent"]["hash"] == PLAIN_TAPE_HASH
    assert out["signatures"]["child"]["hash"] == "20c231fd924816f4485216ea26e51e876033256a91e3dccc371dda4d00a7d078"


def test_chain_hash_only_rejects_timestamp(tx_file):
    result = runner.invoke(
        app,
        ["chain", "1", "a", PARENT_ADDR, "b", CHILD_ADDR, "--variant", "hash_only", "-t", "1599495325",
         "--tx", str(tx_file)],
    )
    assert result.exit_code == 1
    assert "timestamp" in result.stdout


def test_prefix_json():
    result = runner.invoke(app, ["prefix", "foo", "bar", "##dummy_sig1##", PARENT_ADDR, "--json"])
    assert result.exit_code == 1
    assert json.loads(result.stdout)["signatures"][0]["message"] == "foo.bar"


def test_payload_invalid_json():
    result = runner.invoke(app, ["payload", "{nope", "##dummy_sig1##", PARENT_ADDR])
    assert result.exit_code == 1
    assert "payload" in result.stdout


def test_file_hash():
    digest = hashlib.sha256(b"Hello world").hexdigest()
    result = runner.invoke(app, ["file-hash", "text/plain", digest])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"hash": digest, "type": "text/plain"}


def test_verify_text_binding(tx_file):
    result = runner.invoke(
        app,
        ["verify", "1", "##dummy_sig1##", PARENT_ADDR, "-t", "1599495325", "--binding", "text",
         "--tx", str(tx_file), "--json"],
    )
    assert result.exit_code == 1
    assert json.loads(result.stdout)["signatures"][0]["timestamp"] == 1599495325


def test_verify_known_timestamped_signature(tx_file):
    sig = "H0c7y0zWNIQ01IFlgOa3pvEuGIDe53Rc+4ogWyIha/OhWpkg83qNG7tr19XBLc1BSOwbauSRVWi12ncN1jye+iA="
    result = runner.invoke(app, ["verify", "1", sig, PARENT_ADDR, "-t", "1599495325", "--tx", str(tx_file)])
    assert result.exit_code == 0
