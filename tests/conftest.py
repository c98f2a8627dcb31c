# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from airdrop_ledger.bootstrap import create_ledger_state
from airdrop_ledger.core.state import LedgerState

from .fakes import LEDGER_ACCOUNT, TOKEN, FakeTokenHost, register_token


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with create_ledger_state().

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="airdrop-ledger-test",
        log_level="DEBUG",
        contract_account_id=LEDGER_ACCOUNT,
        # Paths (tmp per test run)
        data_dir=tmp_path,
        ledger_db_path=tmp_path / "ledger.sqlite3",
        # Chain adapters are injected by the fixtures below
        rpc_urls=[],
        rpc_timeout_seconds=1.0,
        metadata_timeout_seconds=1.0,
        # Storage deposit
        storage_deposit_per_task=1,
        storage_deposit_per_claim=0,
        # Features
        receiver_messages_enabled=False,
        dispatch_interval_seconds=0.01,
        dispatch_batch_limit=32,
    )


@pytest.fixture()
def host() -> FakeTokenHost:
    return FakeTokenHost()


@pytest.fixture()
def state(settings: SimpleNamespace, host: FakeTokenHost) -> LedgerState:
    """
    LedgerState wired with a fake token host.

    NOTE: The SQLite file is real; the ledger's transactional behavior is part
    of what we want to test.
    """
    return create_ledger_state(settings=settings, metadata_source=host, transfer_host=host)


@pytest.fixture()
def token(state: LedgerState, host: FakeTokenHost) -> str:
    register_token(state, host, TOKEN, symbol="wNEAR")
    return TOKEN
