# src/airdrop_ledger/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class TaskStatus(StrEnum):
    """
    Distribution task lifecycle.

    Notes:
    - "exhausted" is left again (back to "active") only when the payout of one of
      the claims that filled the task is confirmed as failed and rolled back.
    """

    PENDING = "pending"  # created, total amount not yet in custody
    ACTIVE = "active"
    EXHAUSTED = "exhausted"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        return cls(raw)


@dataclass(frozen=True, slots=True)
class TaskRef:
    """Stable identity of a task: the creator plus the creator's sequential index."""

    creator: str
    index: int

    def __str__(self) -> str:
        return f"{self.creator}#{self.index}"


@dataclass(slots=True)
class Task:
    creator: str
    index: int
    token: str

    total_count: int
    amount_per_account: int
    deposit_near: int

    status: TaskStatus
    funded_amount: int
    claimed_count: int

    created_at: float
    updated_at: float

    @property
    def ref(self) -> TaskRef:
        return TaskRef(self.creator, self.index)

    @property
    def total_amount(self) -> int:
        return self.total_count * self.amount_per_account

    @property
    def remaining(self) -> int:
        return self.total_count - self.claimed_count


@dataclass(frozen=True, slots=True)
class CustodyReport:
    """
    Where every deposited unit of one token currently is.

    deposited == unallocated + allocated
    allocated == paid_out + in_flight + held_by_tasks
    """

    token: str
    deposited: int
    allocated: int
    paid_out: int
    in_flight: int

    @property
    def unallocated(self) -> int:
        return self.deposited - self.allocated

    @property
    def held_by_tasks(self) -> int:
        return self.allocated - self.paid_out - self.in_flight
