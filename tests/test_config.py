# tests/test_config.py

from __future__ import annotations

import os
from pathlib import Path

import pytest

from airdrop_ledger.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("AIRDROP_") or name == "NEAR_RPC_URL":
            monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    s = Settings.from_env()

    assert s.app_name == "airdrop-ledger"
    assert s.contract_account_id == "airdrop.testnet"
    assert s.data_dir == Path(".local/airdrop")
    assert s.ledger_db_path == Path(".local/airdrop") / "ledger.sqlite3"
    assert s.rpc_urls == []
    assert s.receiver_messages_enabled is False
    assert s.storage_deposit_per_task == 1
    assert s.storage_deposit_per_claim == 0


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("AIRDROP_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("AIRDROP_RPC_URLS", "https://rpc.a.test, https://rpc.b.test")
    monkeypatch.setenv("AIRDROP_RECEIVER_MESSAGES_ENABLED", "yes")
    monkeypatch.setenv("AIRDROP_STORAGE_DEPOSIT_PER_CLAIM", "3")
    monkeypatch.setenv("AIRDROP_DISPATCH_INTERVAL_SECONDS", "0.5")

    s = Settings.from_env()

    assert s.ledger_db_path == tmp_path / "ledger.sqlite3"
    assert s.rpc_urls == ["https://rpc.a.test", "https://rpc.b.test"]
    assert s.receiver_messages_enabled is True
    assert s.storage_deposit_per_claim == 3
    assert s.dispatch_interval_seconds == 0.5


def test_invalid_numbers_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AIRDROP_STORAGE_DEPOSIT_PER_TASK", "lots")
    monkeypatch.setenv("AIRDROP_DISPATCH_BATCH_LIMIT", "0")
    monkeypatch.setenv("AIRDROP_RPC_TIMEOUT_SECONDS", "")

    s = Settings.from_env()

    assert s.storage_deposit_per_task == 1
    assert s.dispatch_batch_limit == 1
    assert s.rpc_timeout_seconds == 10.0


def test_near_rpc_url_is_used_when_no_list_is_set(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NEAR_RPC_URL", "https://rpc.testnet.near.org")

    assert Settings.from_env().rpc_urls == ["https://rpc.testnet.near.org"]
