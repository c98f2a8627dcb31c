# src/airdrop_ledger/transfers/transfer_gateway.py

from __future__ import annotations

import logging
import sqlite3
import time

from ..core.amounts import from_db, positive_u128, to_db
from ..core.errors import TransferFailed, TransferInFlight
from ..core.ports import ClaimReconciler, TokenTransferHost
from ..storage.database import LedgerDB
from ..tasks.task_models import TaskRef
from .transfer_models import ClaimContext, PendingTransfer, TransferRequest, TransferStatus

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS transfers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        token TEXT NOT NULL,
        receiver_id TEXT NOT NULL,
        amount TEXT NOT NULL,
        task_creator TEXT NOT NULL,
        task_index INTEGER NOT NULL,
        account TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending',
        memo TEXT,
        error TEXT,
        created_at REAL NOT NULL,
        updated_at REAL NOT NULL
    )
    """,
    # One outstanding payout per (task, account); resolved rows stay for audit.
    """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_transfers_outstanding
    ON transfers(task_creator, task_index, account)
    WHERE status IN ('pending', 'sent')
    """,
    "CREATE INDEX IF NOT EXISTS idx_transfers_status ON transfers(status, id)",
)


class TransferGateway:
    """
    Outbound payouts and their two-phase reconciliation.

    - send_tokens(): persist a pending request (inside the caller's transaction)
    - dispatch(): hand it to the token host, then feed the outcome back
    - on_transfer_resolved(): confirming step; on failure it rolls the claim back

    Confirmations are keyed by ClaimContext. A confirmation with no outstanding
    request is ignored, so a duplicated failure can never roll back twice.
    """

    def __init__(self, db: LedgerDB, host: TokenTransferHost) -> None:
        self._db = db
        self._host = host
        self._reconciler: ClaimReconciler | None = None
        self._db.ensure_schema(_SCHEMA)

    def attach_reconciler(self, reconciler: ClaimReconciler) -> None:
        self._reconciler = reconciler

    # ---- low-level helpers ----

    @staticmethod
    def _row_to_transfer(row: sqlite3.Row) -> TransferRequest:
        return TransferRequest(
            id=int(row["id"]),
            token=row["token"],
            receiver_id=row["receiver_id"],
            amount=from_db(row["amount"]),
            context=ClaimContext(
                task_ref=TaskRef(row["task_creator"], int(row["task_index"])),
                account=row["account"],
            ),
            status=TransferStatus(row["status"]),
            memo=row["memo"],
            error=row["error"],
            created_at=float(row["created_at"]),
            updated_at=float(row["updated_at"]),
        )

    def _set_status(
        self,
        transfer_id: int,
        status: TransferStatus,
        *,
        error: str | None = None,
        conn: sqlite3.Connection,
    ) -> None:
        conn.execute(
            "UPDATE transfers SET status = ?, error = ?, updated_at = ? WHERE id = ?",
            (status.value, error, time.time(), int(transfer_id)),
        )

    # ---- initiating step ----

    def send_tokens(
        self,
        token: str,
        recipient: str,
        amount: int,
        context: ClaimContext,
        *,
        conn: sqlite3.Connection | None = None,
    ) -> PendingTransfer:
        value = positive_u128(amount)
        ref = context.task_ref
        memo = f"airdrop task {ref}"

        with self._db.transaction(conn) as c:
            if self.outstanding(context, conn=c) is not None:
                raise TransferInFlight(f"payout to {context.account} for task {ref} is still outstanding")

            now = time.time()
            cur = c.execute(
                """
                INSERT INTO transfers(
                    token, receiver_id, amount, task_creator, task_index, account,
                    status, memo, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, 'pending', ?, ?, ?)
                """,
                (token, recipient, to_db(value), ref.creator, int(ref.index), context.account, memo, now, now),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for transfers insert")

        logger.debug("Transfer requested id=%s task=%s receiver=%s amount=%s", rowid, ref, recipient, value)
        return PendingTransfer(
            transfer_id=int(rowid),
            context=context,
            token=token,
            receiver_id=recipient,
            amount=value,
        )

    def try_mark_sent(self, transfer_id: int) -> bool:
        """
        Atomically transitions pending -> sent.

        Returns True if the row was claimed by this caller (so two dispatchers
        never hand the same payout to the host twice).
        """
        with self._db.transaction() as c:
            cur = c.execute(
                """
                UPDATE transfers
                SET status = 'sent', updated_at = ?
                WHERE id = ? AND status = 'pending'
                """,
                (time.time(), int(transfer_id)),
            )
            return cur.rowcount == 1

    async def dispatch(self, transfer_id: int) -> TransferStatus | None:
        """
        Send one pending transfer and reconcile its outcome.

        Returns the resulting status, or None if the row was not pending.
        An exception other than TransferFailed leaves the row `sent`: the outcome
        is unknown and only an explicit confirmation may resolve it.
        """
        if not self.try_mark_sent(transfer_id):
            return None

        transfer = self.get_transfer(transfer_id)
        if transfer is None:
            return None

        try:
            await self._host.ft_transfer(
                token=transfer.token,
                receiver_id=transfer.receiver_id,
                amount=transfer.amount,
                memo=transfer.memo,
            )
        except TransferFailed as exc:
            self.on_transfer_resolved(
                transfer.context, success=False, error=exc.message, transfer_id=transfer.id
            )
            return TransferStatus.FAILED
        except Exception:
            logger.exception(
                "ft_transfer outcome unknown id=%s task=%s; awaiting confirmation",
                transfer_id,
                transfer.context.task_ref,
            )
            return TransferStatus.SENT

        self.on_transfer_resolved(transfer.context, success=True, transfer_id=transfer.id)
        return TransferStatus.SUCCEEDED

    async def dispatch_pending(self, *, limit: int = 32) -> int:
        """Dispatch up to `limit` pending transfers in request order. Returns how many were sent."""
        sent = 0
        for transfer in self.list_transfers(status=TransferStatus.PENDING, limit=limit):
            if await self.dispatch(transfer.id) is not None:
                sent += 1
        return sent

    # ---- confirming step ----

    def on_transfer_resolved(
        self,
        context: ClaimContext,
        *,
        success: bool,
        error: str | None = None,
        transfer_id: int | None = None,
    ) -> bool:
        """
        Apply a transfer confirmation. Returns False when there was nothing
        outstanding for `context` (duplicate or late confirmation).

        When `transfer_id` is given it must match the outstanding request: a
        confirmation for an older, already resolved payout of the same account
        must not resolve the account's newer claim.
        """
        reconciler = self._reconciler
        if not success and reconciler is None:
            raise RuntimeError("TransferGateway has no claim reconciler attached")

        with self._db.transaction() as c:
            transfer = self.outstanding(context, conn=c)
            if transfer is None or (transfer_id is not None and transfer.id != int(transfer_id)):
                logger.warning(
                    "Ignoring confirmation with no outstanding transfer task=%s account=%s success=%s",
                    context.task_ref,
                    context.account,
                    success,
                )
                return False

            if success:
                self._set_status(transfer.id, TransferStatus.SUCCEEDED, conn=c)
            else:
                self._set_status(transfer.id, TransferStatus.FAILED, error=error or "transfer failed", conn=c)
                reconciler.rollback_claim(context.task_ref, context.account, conn=c)

        if success:
            logger.info("Transfer %s succeeded task=%s account=%s", transfer.id, context.task_ref, context.account)
        else:
            logger.warning(
                "Transfer %s failed task=%s account=%s: %s; claim rolled back",
                transfer.id,
                context.task_ref,
                context.account,
                error,
            )
        return True

    # ---- reads ----

    def get_transfer(self, transfer_id: int, *, conn: sqlite3.Connection | None = None) -> TransferRequest | None:
        with self._db.read(conn) as c:
            row = c.execute("SELECT * FROM transfers WHERE id = ?", (int(transfer_id),)).fetchone()
            return self._row_to_transfer(row) if row else None

    def outstanding(
        self,
        context: ClaimContext,
        *,
        conn: sqlite3.Connection | None = None,
    ) -> TransferRequest | None:
        ref = context.task_ref
        with self._db.read(conn) as c:
            row = c.execute(
                """
                SELECT *
                FROM transfers
                WHERE task_creator = ? AND task_index = ? AND account = ?
                  AND status IN ('pending', 'sent')
                """,
                (ref.creator, int(ref.index), context.account),
            ).fetchone()
            return self._row_to_transfer(row) if row else None

    def list_transfers(
        self,
        *,
        status: TransferStatus | None = None,
        token: str | None = None,
        limit: int | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> list[TransferRequest]:
        clauses: list[str] = []
        params: list[object] = []
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        if token is not None:
            clauses.append("token = ?")
            params.append(token)

        sql = "SELECT * FROM transfers"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY id ASC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        with self._db.read(conn) as c:
            return [self._row_to_transfer(r) for r in c.execute(sql, params).fetchall()]

    def totals_by_status(self, token: str, *, conn: sqlite3.Connection | None = None) -> dict[TransferStatus, int]:
        out = {s: 0 for s in TransferStatus}
        for t in self.list_transfers(token=token, conn=conn):
            out[t.status] += t.amount
        return out
