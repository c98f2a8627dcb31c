# tests/test_bootstrap.py

from __future__ import annotations

import logging

import pytest

from airdrop_ledger.bootstrap import create_ledger_state
from airdrop_ledger.chain.simulated import SimulatedTokenHost
from airdrop_ledger.core.errors import MetadataFetchFailed
from airdrop_ledger.logging_setup import setup_logging
from airdrop_ledger.transfers.transfer_models import TransferStatus


@pytest.mark.asyncio
async def test_state_without_rpc_runs_on_the_simulated_host(settings) -> None:
    host = SimulatedTokenHost()
    host.add_token("wrap.testnet", name="Wrapped NEAR", symbol="wNEAR", decimals=24)
    state = create_ledger_state(settings=settings, metadata_source=host, transfer_host=host)

    await state.tokens.register("wrap.testnet")
    with pytest.raises(MetadataFetchFailed):
        await state.tokens.register("nothing.testnet")

    host.credit("wrap.testnet", 30)
    state.inbound.on_incoming_transfer("wrap.testnet", "alice.testnet", 30, "")
    ref = state.tasks.create_task("alice.testnet", 3, 10, "wrap.testnet", 1)
    first = state.tasks.claim(ref, "bob.testnet")

    assert await state.transfers.dispatch(first.transfer_id) == TransferStatus.SUCCEEDED
    assert host.balance_of("wrap.testnet") == 20
    assert [t.receiver_id for t in host.transfers] == ["bob.testnet"]


@pytest.mark.asyncio
async def test_simulated_host_rejects_transfers_it_cannot_cover(settings) -> None:
    host = SimulatedTokenHost()
    host.add_token("wrap.testnet", name="Wrapped NEAR", symbol="wNEAR")
    state = create_ledger_state(settings=settings, metadata_source=host, transfer_host=host)
    await state.tokens.register("wrap.testnet")

    # The ledger records the deposit, but the simulated contract never saw the tokens.
    state.inbound.on_incoming_transfer("wrap.testnet", "alice.testnet", 10, "")
    ref = state.tasks.create_task("alice.testnet", 1, 10, "wrap.testnet", 1)
    pending = state.tasks.claim(ref, "bob.testnet")

    assert await state.transfers.dispatch(pending.transfer_id) == TransferStatus.FAILED
    assert state.tasks.claimed_accounts(ref) == {}


def test_default_adapters_and_shared_database(settings) -> None:
    state = create_ledger_state(settings=settings)

    assert state.db.path == settings.ledger_db_path
    assert settings.ledger_db_path.exists()
    assert state.tokens.list() == []
    assert state.settings is settings


def test_setup_logging_writes_full_and_audit_logs(tmp_path) -> None:
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        setup_logging(log_dir=tmp_path / "logs", console_level=logging.WARNING)
        logging.getLogger("airdrop_ledger.test").debug("ledger debug line")
        logging.getLogger("airdrop_ledger.tasks.task_manager").info("Claim recorded task=a#0")
        logging.getLogger("airdrop_ledger.transfers.transfer_dispatcher").info("Transfer 1 -> succeeded")
        for h in logging.getLogger().handlers:
            h.flush()

        full = (tmp_path / "logs" / "ledger.log").read_text(encoding="utf-8")
        audit = (tmp_path / "logs" / "audit.log").read_text(encoding="utf-8")

        assert "ledger debug line" in full
        assert "Transfer 1 -> succeeded" in full
        assert "Claim recorded task=a#0" in audit
        assert "ledger debug line" not in audit
        assert "Transfer 1" not in audit
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved[0]:
            root.addHandler(h)
        root.setLevel(saved[1])


def test_rpc_without_transfer_host_is_rejected(settings) -> None:
    settings.rpc_urls = ["https://rpc.testnet.near.org"]

    with pytest.raises(RuntimeError, match="transfer host"):
        create_ledger_state(settings=settings)


def test_rpc_with_injected_transfer_host(settings) -> None:
    settings.rpc_urls = ["https://rpc.testnet.near.org"]
    host = SimulatedTokenHost()

    state = create_ledger_state(settings=settings, transfer_host=host)

    assert state.tokens.list() == []
