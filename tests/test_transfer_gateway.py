# tests/test_transfer_gateway.py

from __future__ import annotations

import asyncio

import pytest

from airdrop_ledger.core.errors import AlreadyClaimed, TransferInFlight
from airdrop_ledger.tasks.task_models import TaskRef, TaskStatus
from airdrop_ledger.transfers.transfer_dispatcher import run_transfer_dispatcher
from airdrop_ledger.transfers.transfer_models import ClaimContext, TransferStatus

ALICE = "alice.testnet"


def _active_task(state, token: str, *, total_count: int = 3, amount: int = 10) -> TaskRef:
    state.inbound.on_incoming_transfer(token, ALICE, total_count * amount, "")
    return state.tasks.create_task(ALICE, total_count, amount, token, 1)


@pytest.mark.asyncio
async def test_dispatch_success_keeps_claim(state, host, token) -> None:
    ref = _active_task(state, token)
    pending = state.tasks.claim(ref, "bob.testnet")

    outcome = await state.transfers.dispatch(pending.transfer_id)

    assert outcome == TransferStatus.SUCCEEDED
    assert [(s.receiver_id, s.amount, s.memo) for s in host.sent] == [
        ("bob.testnet", 10, "airdrop task alice.testnet#0"),
    ]
    assert state.transfers.get_transfer(pending.transfer_id).status == TransferStatus.SUCCEEDED
    assert state.transfers.outstanding(pending.context) is None
    assert state.tasks.claimed_accounts(ref) == {"bob.testnet": 10}

    # Already resolved: nothing is sent twice.
    assert await state.transfers.dispatch(pending.transfer_id) is None
    assert len(host.sent) == 1


@pytest.mark.asyncio
async def test_rejected_transfer_rolls_claim_back(state, host, token) -> None:
    ref = _active_task(state, token)
    remaining_before = state.tasks.remaining(ref)
    host.fail_receivers.add("bob.testnet")

    pending = state.tasks.claim(ref, "bob.testnet")
    outcome = await state.transfers.dispatch(pending.transfer_id)

    assert outcome == TransferStatus.FAILED
    failed = state.transfers.get_transfer(pending.transfer_id)
    assert failed.status == TransferStatus.FAILED
    assert "not registered" in (failed.error or "")
    assert state.tasks.claimed_accounts(ref) == {}
    assert state.tasks.remaining(ref) == remaining_before

    # The account may claim again; the new payout is a new request.
    host.fail_receivers.clear()
    again = state.tasks.claim(ref, "bob.testnet")
    assert again.transfer_id != pending.transfer_id
    assert await state.transfers.dispatch(again.transfer_id) == TransferStatus.SUCCEEDED


@pytest.mark.asyncio
async def test_unknown_outcome_stays_sent_until_confirmed(state, host, token) -> None:
    ref = _active_task(state, token)
    host.unknown_receivers.add("bob.testnet")

    pending = state.tasks.claim(ref, "bob.testnet")
    outcome = await state.transfers.dispatch(pending.transfer_id)

    assert outcome == TransferStatus.SENT
    assert state.transfers.outstanding(pending.context).id == pending.transfer_id
    with pytest.raises(AlreadyClaimed):
        state.tasks.claim(ref, "bob.testnet")

    assert state.transfers.on_transfer_resolved(pending.context, success=False, error="receipt failed") is True
    assert state.tasks.claimed_accounts(ref) == {}

    # A duplicated failure confirmation never rolls back twice.
    state.tasks.claim(ref, "carol.testnet")
    assert state.transfers.on_transfer_resolved(pending.context, success=False) is False
    assert state.tasks.claimed_accounts(ref) == {"carol.testnet": 10}


@pytest.mark.asyncio
async def test_confirmation_for_older_payout_does_not_touch_reclaim(state, host, token) -> None:
    ref = _active_task(state, token)
    host.fail_receivers.add("bob.testnet")
    first = state.tasks.claim(ref, "bob.testnet")
    await state.transfers.dispatch(first.transfer_id)

    second = state.tasks.claim(ref, "bob.testnet")

    resolved = state.transfers.on_transfer_resolved(
        first.context, success=False, transfer_id=first.transfer_id
    )
    assert resolved is False
    assert state.tasks.claimed_accounts(ref) == {"bob.testnet": 10}
    assert state.transfers.get_transfer(second.transfer_id).status == TransferStatus.PENDING


def test_success_confirmation_without_dispatch(state, token) -> None:
    ref = _active_task(state, token, total_count=1)
    pending = state.tasks.claim(ref, "bob.testnet")

    assert state.transfers.on_transfer_resolved(pending.context, success=True) is True
    assert state.transfers.on_transfer_resolved(pending.context, success=True) is False
    assert state.tasks.get_task(ref).status == TaskStatus.EXHAUSTED


def test_send_tokens_rejects_second_outstanding_payout(state, token) -> None:
    ctx = ClaimContext(task_ref=TaskRef(ALICE, 0), account="bob.testnet")
    state.transfers.send_tokens(token, "bob.testnet", 10, ctx)

    with pytest.raises(TransferInFlight):
        state.transfers.send_tokens(token, "bob.testnet", 10, ctx)

    assert len(state.transfers.list_transfers(status=TransferStatus.PENDING)) == 1


@pytest.mark.asyncio
async def test_dispatch_pending_sends_in_request_order(state, host, token) -> None:
    ref = _active_task(state, token)
    for account in ("a.testnet", "b.testnet", "c.testnet"):
        state.tasks.claim(ref, account)

    sent = await state.transfers.dispatch_pending(limit=2)

    assert sent == 2
    assert [s.receiver_id for s in host.sent] == ["a.testnet", "b.testnet"]
    assert [t.context.account for t in state.transfers.list_transfers(status=TransferStatus.PENDING)] == [
        "c.testnet"
    ]


def test_custody_report_accounts_for_every_unit(state, token) -> None:
    ref = _active_task(state, token, total_count=3, amount=10)
    state.inbound.on_incoming_transfer(token, ALICE, 5, "")
    a = state.tasks.claim(ref, "a.testnet")
    state.tasks.claim(ref, "b.testnet")
    state.transfers.on_transfer_resolved(a.context, success=True)

    report = state.tasks.custody_report(token)

    assert report.deposited == 35
    assert report.allocated == 30
    assert report.unallocated == 5
    assert report.paid_out == 10
    assert report.in_flight == 10
    assert report.held_by_tasks == 10


@pytest.mark.asyncio
async def test_dispatcher_loop_pays_out_pending_claims(state, host, token) -> None:
    ref = _active_task(state, token)
    host.fail_receivers.add("b.testnet")
    for account in ("a.testnet", "b.testnet", "c.testnet"):
        state.tasks.claim(ref, account)

    runner = asyncio.create_task(
        run_transfer_dispatcher(
            state.transfers,
            interval_seconds=0.01,
            batch_limit=10,
        )
    )

    await asyncio.sleep(0.2)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert [s.receiver_id for s in host.sent] == ["a.testnet", "c.testnet"]
    assert state.transfers.list_transfers(status=TransferStatus.PENDING) == []
    assert set(state.tasks.claimed_accounts(ref)) == {"a.testnet", "c.testnet"}
    assert state.tasks.get_task(ref).status == TaskStatus.ACTIVE
