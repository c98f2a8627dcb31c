# src/airdrop_ledger/tasks/task_manager.py

"""
Distribution task lifecycle.

A task moves pending -> active -> exhausted:
- pending: created, but total_count * amount_per_account is not yet earmarked
  from the creator's deposited custody
- active: fully funded, accepting claims
- exhausted: every slot is claimed (or reserved by an outstanding payout)

Claims are recorded in the same transaction that persists the payout request,
so a second claim for the same account always sees the first one, even while
its transfer is still unconfirmed.
"""

from __future__ import annotations

import logging
import sqlite3

from ..core.amounts import U32_MAX, checked_mul_u128, parse_u128
from ..core.errors import (
    AlreadyClaimed,
    InsufficientDeposit,
    InsufficientFunds,
    InvalidAmount,
    Overflow,
    TaskExhausted,
    TaskNotActive,
    UnknownTask,
    UnregisteredToken,
)
from ..deposits.deposit_ledger import DepositLedger
from ..storage.database import LedgerDB
from ..tokens.token_registry import TokenRegistry
from ..transfers.transfer_gateway import TransferGateway
from ..transfers.transfer_models import ClaimContext, PendingTransfer, TransferStatus
from .task_models import CustodyReport, Task, TaskRef, TaskStatus
from .task_store import TaskStore

logger = logging.getLogger(__name__)


def _parse_count(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"total_count must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidAmount("total_count must be positive")
    if value > U32_MAX:
        raise Overflow("total_count exceeds u32::MAX")
    return value


class TaskManager:
    def __init__(
        self,
        db: LedgerDB,
        registry: TokenRegistry,
        deposits: DepositLedger,
        gateway: TransferGateway,
        *,
        storage_deposit_per_task: int = 1,
        storage_deposit_per_claim: int = 0,
    ) -> None:
        self._db = db
        self._registry = registry
        self._deposits = deposits
        self._gateway = gateway
        self._store = TaskStore(db)
        self._deposit_per_task = max(0, int(storage_deposit_per_task))
        self._deposit_per_claim = max(0, int(storage_deposit_per_claim))

    def required_storage_deposit(self, total_count: int) -> int:
        """Native-currency deposit that covers the task row plus one claim row per slot."""
        return self._deposit_per_task + self._deposit_per_claim * int(total_count)

    def _available(self, creator: str, token: str, *, conn: sqlite3.Connection) -> int:
        allocated = self._store.allocated_total(token=token, creator=creator, conn=conn)
        return self._deposits.available_balance(creator, token, allocated=allocated, conn=conn)

    # ---- creation / funding ----

    def create_task(
        self,
        creator: str,
        total_count: int,
        amount_per_account: int,
        token: str,
        deposit_near: int,
    ) -> TaskRef:
        """
        Create a task, funding it immediately when the creator's unallocated
        deposits of `token` already cover the total amount.
        """
        if not creator:
            raise ValueError("creator is required")

        with self._db.transaction() as c:
            if not self._registry.is_registered(token, conn=c):
                raise UnregisteredToken(f"token {token} is not registered")

            count = _parse_count(total_count)
            per_account = parse_u128(amount_per_account, field="amount_per_account")
            if per_account == 0:
                raise InvalidAmount("amount_per_account must be positive")
            total_amount = checked_mul_u128(count, per_account)

            attached = parse_u128(deposit_near, field="deposit_near")
            required = self.required_storage_deposit(count)
            if attached < required:
                raise InsufficientDeposit(f"attached {attached}, storage requires {required}")

            index = self._store.count_tasks(creator, conn=c)
            if index > U32_MAX:
                raise Overflow(f"creator {creator} has too many tasks")

            funded = self._available(creator, token, conn=c) >= total_amount
            status = TaskStatus.ACTIVE if funded else TaskStatus.PENDING

            self._store.insert_task(
                creator=creator,
                index=index,
                token=token,
                total_count=count,
                amount_per_account=per_account,
                deposit_near=attached,
                status=status,
                funded_amount=total_amount if funded else 0,
                conn=c,
            )

        ref = TaskRef(creator, index)
        logger.info(
            "Task created task=%s token=%s total_count=%s amount_per_account=%s status=%s",
            ref,
            token,
            count,
            per_account,
            status.value,
        )
        return ref

    def _fund(self, task: Task, *, conn: sqlite3.Connection) -> bool:
        if task.status != TaskStatus.PENDING:
            return False
        if self._available(task.creator, task.token, conn=conn) < task.total_amount:
            return False
        self._store.update_task_fields(
            task.ref,
            status=TaskStatus.ACTIVE,
            funded_amount=task.total_amount,
            conn=conn,
        )
        logger.info("Task funded task=%s amount=%s", task.ref, task.total_amount)
        return True

    def fund_task(self, ref: TaskRef, *, conn: sqlite3.Connection | None = None) -> Task:
        """Earmark custody for a pending task. No-op for tasks that are already funded."""
        with self._db.transaction(conn) as c:
            task = self._store.get_task(ref, conn=c)
            if task is None:
                raise UnknownTask(f"task {ref} does not exist")
            if task.status == TaskStatus.PENDING and not self._fund(task, conn=c):
                available = self._available(task.creator, task.token, conn=c)
                raise InsufficientFunds(
                    f"task {ref} needs {task.total_amount} {task.token}, available {available}"
                )
            return self._store.get_task(ref, conn=c) or task

    def activate_pending_tasks(
        self,
        creator: str,
        token: str,
        *,
        conn: sqlite3.Connection | None = None,
    ) -> list[TaskRef]:
        """Fund, in index order, each pending task of `creator` the available balance covers."""
        activated: list[TaskRef] = []
        with self._db.transaction(conn) as c:
            for task in self._store.list_tasks(creator=creator, token=token, status=TaskStatus.PENDING, conn=c):
                if self._fund(task, conn=c):
                    activated.append(task.ref)
        return activated

    # ---- claims ----

    def claim(self, ref: TaskRef, account: str) -> PendingTransfer:
        """
        Reserve `account`'s payout and request the transfer, atomically.

        The returned handle is dispatched later; if that transfer is confirmed
        as failed the claim is rolled back and the account may claim again.
        """
        if not account:
            raise ValueError("account is required")

        with self._db.transaction() as c:
            task = self._store.get_task(ref, conn=c)
            if task is None:
                raise UnknownTask(f"task {ref} does not exist")
            if self._store.has_claim(ref, account, conn=c):
                raise AlreadyClaimed(f"{account} already claimed task {ref}")
            if task.status == TaskStatus.PENDING:
                raise TaskNotActive(f"task {ref} is not funded yet")
            if task.status == TaskStatus.EXHAUSTED or task.claimed_count >= task.total_count:
                raise TaskExhausted(f"task {ref} has no remaining claims")

            self._store.add_claim(ref, account, task.amount_per_account, conn=c)
            if task.claimed_count + 1 == task.total_count:
                self._store.update_task_fields(ref, status=TaskStatus.EXHAUSTED, conn=c)

            pending = self._gateway.send_tokens(
                task.token,
                account,
                task.amount_per_account,
                ClaimContext(task_ref=ref, account=account),
                conn=c,
            )

        logger.info(
            "Claim recorded task=%s account=%s claimed=%s/%s transfer=%s",
            ref,
            account,
            task.claimed_count + 1,
            task.total_count,
            pending.transfer_id,
        )
        return pending

    def rollback_claim(self, task_ref: TaskRef, account: str, *, conn: sqlite3.Connection | None = None) -> bool:
        """
        Undo a claim whose payout failed. Only the transfer gateway's failure
        confirmation calls this. Never raises for a missing claim.
        """
        with self._db.transaction(conn) as c:
            if not self._store.remove_claim(task_ref, account, conn=c):
                logger.warning("Rollback found no claim task=%s account=%s", task_ref, account)
                return False

            task = self._store.get_task(task_ref, conn=c)
            if task is not None and task.status == TaskStatus.EXHAUSTED:
                self._store.update_task_fields(task_ref, status=TaskStatus.ACTIVE, conn=c)

        logger.info("Claim rolled back task=%s account=%s", task_ref, account)
        return True

    # ---- reads ----

    def get_task(self, ref: TaskRef) -> Task:
        task = self._store.get_task(ref)
        if task is None:
            raise UnknownTask(f"task {ref} does not exist")
        return task

    def list_tasks(self, creator: str | None = None) -> list[Task]:
        return self._store.list_tasks(creator=creator)

    def claimed_accounts(self, ref: TaskRef) -> dict[str, int]:
        return self._store.claimed_accounts(ref)

    def remaining(self, ref: TaskRef) -> int:
        return self.get_task(ref).remaining

    def available_balance(self, account: str, token: str) -> int:
        with self._db.read() as c:
            return self._available(account, token, conn=c)

    def custody_report(self, token: str) -> CustodyReport:
        with self._db.read() as c:
            totals = self._gateway.totals_by_status(token, conn=c)
            return CustodyReport(
                token=token,
                deposited=self._deposits.total_for_token(token, conn=c),
                allocated=self._store.allocated_total(token=token, conn=c),
                paid_out=totals[TransferStatus.SUCCEEDED],
                in_flight=totals[TransferStatus.PENDING] + totals[TransferStatus.SENT],
            )
