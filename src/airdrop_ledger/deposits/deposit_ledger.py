# src/airdrop_ledger/deposits/deposit_ledger.py

from __future__ import annotations

import logging
import sqlite3
import time
from dataclasses import dataclass

from ..core.amounts import from_db, positive_u128, to_db
from ..core.errors import UnregisteredToken
from ..storage.database import LedgerDB
from ..tokens.token_registry import TokenRegistry

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS records (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        sender TEXT NOT NULL,
        receiver TEXT NOT NULL,
        token TEXT NOT NULL,
        amount TEXT NOT NULL,
        created_at REAL NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_records_sender_token ON records(sender, token)",
)


@dataclass(frozen=True, slots=True)
class Record:
    id: int
    sender: str
    receiver: str
    token: str
    amount: int
    created_at: float


class DepositLedger:
    """
    Append-only log of inbound transfers the ledger has custody of.

    Records are never updated or deleted. Balances are always derived from the
    log (plus the allocations held by tasks), never stored separately.
    """

    def __init__(self, db: LedgerDB, registry: TokenRegistry, *, receiver_id: str) -> None:
        self._db = db
        self._registry = registry
        self._receiver_id = receiver_id
        self._db.ensure_schema(_SCHEMA)

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> Record:
        return Record(
            id=int(row["id"]),
            sender=row["sender"],
            receiver=row["receiver"],
            token=row["token"],
            amount=from_db(row["amount"]),
            created_at=float(row["created_at"]),
        )

    def record_deposit(
        self,
        sender: str,
        token: str,
        amount: int,
        *,
        conn: sqlite3.Connection | None = None,
    ) -> Record:
        """Append one Record. The transfer itself is attested by the caller, not re-verified."""
        with self._db.transaction(conn) as c:
            if not self._registry.is_registered(token, conn=c):
                raise UnregisteredToken(f"token {token} is not registered")
            value = positive_u128(amount)

            now = time.time()
            cur = c.execute(
                """
                INSERT INTO records(sender, receiver, token, amount, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (sender, self._receiver_id, token, to_db(value), now),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for records insert")

        logger.info("Deposit recorded id=%s sender=%s token=%s amount=%s", rowid, sender, token, value)
        return Record(
            id=int(rowid),
            sender=sender,
            receiver=self._receiver_id,
            token=token,
            amount=value,
            created_at=now,
        )

    def records(
        self,
        *,
        sender: str | None = None,
        token: str | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> list[Record]:
        clauses: list[str] = []
        params: list[str] = []
        if sender is not None:
            clauses.append("sender = ?")
            params.append(sender)
        if token is not None:
            clauses.append("token = ?")
            params.append(token)

        sql = "SELECT * FROM records"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY id ASC"

        with self._db.read(conn) as c:
            return [self._row_to_record(r) for r in c.execute(sql, params).fetchall()]

    def total_deposited(
        self,
        sender: str,
        token: str,
        *,
        conn: sqlite3.Connection | None = None,
    ) -> int:
        # Summed in Python: SQLite SUM() would go through REAL and lose u128 precision.
        return sum(r.amount for r in self.records(sender=sender, token=token, conn=conn))

    def total_for_token(self, token: str, *, conn: sqlite3.Connection | None = None) -> int:
        return sum(r.amount for r in self.records(token=token, conn=conn))

    def available_balance(
        self,
        account: str,
        token: str,
        *,
        allocated: int,
        conn: sqlite3.Connection | None = None,
    ) -> int:
        """Deposited custody not yet earmarked for one of the account's funded tasks."""
        return self.total_deposited(account, token, conn=conn) - int(allocated)
