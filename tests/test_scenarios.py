# tests/test_scenarios.py

from __future__ import annotations

import pytest

from airdrop_ledger.core.errors import AlreadyClaimed, FeatureDisabled, TaskExhausted
from airdrop_ledger.tasks.task_models import TaskStatus
from airdrop_ledger.transfers.transfer_models import TransferStatus

CREATOR = "creator.testnet"
TOKEN = "token-t.testnet"


@pytest.mark.asyncio
async def test_campaign_from_registration_to_exhaustion(state, host) -> None:
    host.add_token(TOKEN, symbol="T")
    await state.tokens.register(TOKEN)

    ref = state.tasks.create_task(CREATOR, 10, 100, TOKEN, 1)
    assert state.tasks.get_task(ref).status == TaskStatus.PENDING

    assert state.inbound.on_incoming_transfer(TOKEN, CREATOR, 1000, "") == 1000
    assert state.tasks.get_task(ref).status == TaskStatus.ACTIVE

    state.tasks.claim(ref, "a.testnet")
    assert len(state.tasks.claimed_accounts(ref)) == 1
    with pytest.raises(AlreadyClaimed):
        state.tasks.claim(ref, "a.testnet")

    for i in range(1, 10):
        state.tasks.claim(ref, f"user{i}.testnet")

    assert state.tasks.get_task(ref).status == TaskStatus.EXHAUSTED
    with pytest.raises(TaskExhausted):
        state.tasks.claim(ref, "late.testnet")

    assert await state.transfers.dispatch_pending(limit=50) == 10
    assert sum(s.amount for s in host.sent) == 1000

    report = state.tasks.custody_report(TOKEN)
    assert report.deposited == report.allocated == report.paid_out == 1000
    assert report.in_flight == 0
    assert report.held_by_tasks == 0


@pytest.mark.asyncio
async def test_failed_payout_lets_the_account_claim_again(state, host) -> None:
    host.add_token(TOKEN, symbol="T")
    await state.tokens.register(TOKEN)
    state.inbound.on_incoming_transfer(TOKEN, CREATOR, 1000, "")
    ref = state.tasks.create_task(CREATOR, 10, 100, TOKEN, 1)

    remaining_before = state.tasks.remaining(ref)
    host.fail_receivers.add("b.testnet")

    first = state.tasks.claim(ref, "b.testnet")
    assert await state.transfers.dispatch(first.transfer_id) == TransferStatus.FAILED
    assert state.tasks.remaining(ref) == remaining_before

    host.fail_receivers.clear()
    second = state.tasks.claim(ref, "b.testnet")
    assert await state.transfers.dispatch(second.transfer_id) == TransferStatus.SUCCEEDED

    assert state.tasks.claimed_accounts(ref) == {"b.testnet": 100}
    assert state.tasks.remaining(ref) == remaining_before - 1
    report = state.tasks.custody_report(TOKEN)
    assert report.paid_out == 100
    assert report.held_by_tasks == 900


@pytest.mark.asyncio
async def test_registered_tokens_and_deposit_records_stay_consistent(state, host) -> None:
    addresses = [f"t{i}.testnet" for i in range(4)]
    for address in addresses:
        host.add_token(address, symbol=address[:2].upper())
        await state.tokens.register(address)

    assert [t.address for t in state.tokens.list_tokens()] == addresses
    for token in state.tokens.list_tokens():
        assert token.metadata.symbol == token.address[:2].upper()

    before = len(state.deposits.records())
    state.inbound.on_incoming_transfer(addresses[0], CREATOR, 5, "")
    assert len(state.deposits.records()) == before + 1

    with pytest.raises(FeatureDisabled):
        state.inbound.on_incoming_transfer(addresses[0], CREATOR, 5, "memo")
    assert len(state.deposits.records()) == before + 1
