# src/airdrop_ledger/transfers/transfer_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from ..tasks.task_models import TaskRef


class TransferStatus(StrEnum):
    """
    Outbound transfer lifecycle.

    pending/sent rows are the "awaiting confirmation" markers; at most one of them
    exists per (task, account) context.
    """

    PENDING = "pending"  # persisted, not yet handed to the token host
    SENT = "sent"  # handed to the host, confirmation outstanding
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def outstanding(self) -> bool:
        return self in (TransferStatus.PENDING, TransferStatus.SENT)


@dataclass(frozen=True, slots=True)
class ClaimContext:
    """What a transfer confirmation carries back: enough to undo the claim it pays."""

    task_ref: TaskRef
    account: str


@dataclass(frozen=True, slots=True)
class PendingTransfer:
    """Handle returned when a payout is requested."""

    transfer_id: int
    context: ClaimContext
    token: str
    receiver_id: str
    amount: int


@dataclass(frozen=True, slots=True)
class TransferRequest:
    id: int
    token: str
    receiver_id: str
    amount: int
    context: ClaimContext
    status: TransferStatus
    memo: str | None
    error: str | None
    created_at: float
    updated_at: float
