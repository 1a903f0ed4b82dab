"""
Forge Deploy Parser Tests
=========================
"""
import json

from kitpilot.parser.forge_parser import parse_forge_broadcast, parse_forge_stdout

TOKEN_ADDR = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
VAULT_ADDR = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
TX1 = "0x" + "11" * 32
TX2 = "0x" + "22" * 32


def _broadcast(tmp_path, payload, script="Deploy.s.sol", chain_id=31337):
    run_dir = tmp_path / "broadcast" / script / str(chain_id)
    run_dir.mkdir(parents=True)
    (run_dir / "run-latest.json").write_text(
        payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8"
    )


def test_broadcast_keeps_create_transactions(tmp_path):
    _broadcast(tmp_path, {"transactions": [
        {"transactionType": "CREATE", "contractName": "Token", "contractAddress": TOKEN_ADDR,
         "hash": TX1, "receipt": {"blockNumber": "0x2a"}},
        {"transactionType": "CALL", "contractName": "Token", "contractAddress": TOKEN_ADDR, "hash": TX2},
        {"transactionType": "CREATE2", "contractName": "Vault", "contractAddress": VAULT_ADDR,
         "hash": TX2, "receipt": {"blockNumber": 7}},
    ]})

    contracts = parse_forge_broadcast(str(tmp_path), "Deploy.s.sol", 31337)

    assert [(c.contract_name, c.address, c.block_number) for c in contracts] == [
        ("Token", TOKEN_ADDR, 42),
        ("Vault", VAULT_ADDR, 7),
    ]
    assert contracts[0].tx_hash == TX1


def test_broadcast_missing_or_malformed_yields_nothing(tmp_path):
    assert parse_forge_broadcast(str(tmp_path), "Deploy.s.sol", 31337) == []

    _broadcast(tmp_path, "{not json")
    assert parse_forge_broadcast(str(tmp_path), "Deploy.s.sol", 31337) == []


def test_broadcast_for_other_chain_is_not_read(tmp_path):
    _broadcast(tmp_path, {"transactions": []}, chain_id=1)

    assert parse_forge_broadcast(str(tmp_path), "Deploy.s.sol", 31337) == []


def test_stdout_fallback_pairs_by_position():
    stdout = (
        f"== Logs ==\n"
        f"  contract Token at {TOKEN_ADDR}\n"
        f"  Vault deployed to: {VAULT_ADDR}\n"
        f"Transaction: {TX1}\n"
        f"Block: 12\n"
    )

    contracts = parse_forge_stdout(stdout)

    assert [(c.contract_name, c.address) for c in contracts] == [
        ("Token", TOKEN_ADDR),
        ("Contract", VAULT_ADDR),
    ]
    assert contracts[0].tx_hash == TX1
    assert contracts[0].block_number == 12
    assert contracts[1].tx_hash == ""
    assert contracts[1].block_number == 0


def test_stdout_without_addresses():
    assert parse_forge_stdout("Script ran successfully.") == []
    assert parse_forge_stdout("") == []
