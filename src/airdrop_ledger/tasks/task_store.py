# src/airdrop_ledger/tasks/task_store.py

from __future__ import annotations

import logging
import sqlite3
import time

from ..core.amounts import from_db, to_db
from ..storage.database import LedgerDB
from .task_models import Task, TaskRef, TaskStatus

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite tables for tasks and their claims.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Every method takes an optional `conn` so TaskManager can run several of them
    (and writes of other components) inside one transaction.
    """

    def __init__(self, db: LedgerDB) -> None:
        self._db = db
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", db.path, total)

    # ---- low-level helpers ----

    def _ensure_schema(self) -> None:
        with self._db.transaction() as cur:
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    creator TEXT NOT NULL,
                    idx INTEGER NOT NULL,
                    token TEXT NOT NULL,
                    total_count INTEGER NOT NULL,
                    amount_per_account TEXT NOT NULL,
                    deposit_near TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    funded_amount TEXT NOT NULL DEFAULT '0',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (creator, idx)
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS claims (
                    creator TEXT NOT NULL,
                    idx INTEGER NOT NULL,
                    account TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    claimed_at REAL NOT NULL,
                    PRIMARY KEY (creator, idx, account),
                    FOREIGN KEY (creator, idx) REFERENCES tasks(creator, idx)
                )
                """
            )

            # Migrations (safe): add missing columns.
            cols = {row["name"] for row in cur.execute("PRAGMA table_info(tasks)").fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("status", "TEXT NOT NULL DEFAULT 'pending'")
            add_col("funded_amount", "TEXT NOT NULL DEFAULT '0'")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_token_status ON tasks(token, status)")

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            creator=row["creator"],
            index=int(row["idx"]),
            token=row["token"],
            total_count=int(row["total_count"]),
            amount_per_account=from_db(row["amount_per_account"]),
            deposit_near=from_db(row["deposit_near"]),
            status=TaskStatus.from_db(row["status"]),
            funded_amount=from_db(row["funded_amount"]),
            claimed_count=int(row["claimed_count"] or 0),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    _SELECT = """
        SELECT t.*,
               (SELECT COUNT(*) FROM claims c WHERE c.creator = t.creator AND c.idx = t.idx)
                   AS claimed_count
        FROM tasks t
    """

    # ---- tasks ----

    def count_tasks(self, creator: str | None = None, *, conn: sqlite3.Connection | None = None) -> int:
        with self._db.read(conn) as c:
            if creator is None:
                (n,) = c.execute("SELECT COUNT(*) FROM tasks").fetchone()
            else:
                (n,) = c.execute("SELECT COUNT(*) FROM tasks WHERE creator = ?", (creator,)).fetchone()
            return int(n)

    def insert_task(
        self,
        *,
        creator: str,
        index: int,
        token: str,
        total_count: int,
        amount_per_account: int,
        deposit_near: int,
        status: TaskStatus,
        funded_amount: int,
        conn: sqlite3.Connection,
    ) -> None:
        now = time.time()
        conn.execute(
            """
            INSERT INTO tasks(
                creator, idx, token, total_count, amount_per_account, deposit_near,
                status, funded_amount, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                creator,
                int(index),
                token,
                int(total_count),
                to_db(amount_per_account),
                to_db(deposit_near),
                status.value,
                to_db(funded_amount),
                now,
                now,
            ),
        )

    def get_task(self, ref: TaskRef, *, conn: sqlite3.Connection | None = None) -> Task | None:
        with self._db.read(conn) as c:
            row = c.execute(
                self._SELECT + " WHERE t.creator = ? AND t.idx = ?",
                (ref.creator, int(ref.index)),
            ).fetchone()
            return self._row_to_task(row) if row else None

    def list_tasks(
        self,
        *,
        creator: str | None = None,
        token: str | None = None,
        status: TaskStatus | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> list[Task]:
        clauses: list[str] = []
        params: list[str] = []
        if creator is not None:
            clauses.append("t.creator = ?")
            params.append(creator)
        if token is not None:
            clauses.append("t.token = ?")
            params.append(token)
        if status is not None:
            clauses.append("t.status = ?")
            params.append(status.value)

        sql = self._SELECT
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY t.creator ASC, t.idx ASC"

        with self._db.read(conn) as c:
            return [self._row_to_task(r) for r in c.execute(sql, params).fetchall()]

    def update_task_fields(
        self,
        ref: TaskRef,
        *,
        status: TaskStatus | None = None,
        funded_amount: int | None = None,
        conn: sqlite3.Connection,
    ) -> None:
        fields: list[str] = []
        params: list[object] = []

        if status is not None:
            fields.append("status = ?")
            params.append(status.value)

        if funded_amount is not None:
            fields.append("funded_amount = ?")
            params.append(to_db(funded_amount))

        if not fields:
            return

        fields.append("updated_at = ?")
        params.append(time.time())
        params.extend([ref.creator, int(ref.index)])

        conn.execute(f"UPDATE tasks SET {', '.join(fields)} WHERE creator = ? AND idx = ?", params)

    def allocated_total(
        self,
        *,
        token: str,
        creator: str | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> int:
        """Sum of custody earmarked by funded tasks (optionally for one creator)."""
        sql = "SELECT funded_amount FROM tasks WHERE token = ?"
        params: list[str] = [token]
        if creator is not None:
            sql += " AND creator = ?"
            params.append(creator)
        with self._db.read(conn) as c:
            return sum(from_db(r["funded_amount"]) for r in c.execute(sql, params).fetchall())

    # ---- claims ----

    def has_claim(self, ref: TaskRef, account: str, *, conn: sqlite3.Connection | None = None) -> bool:
        with self._db.read(conn) as c:
            row = c.execute(
                "SELECT 1 FROM claims WHERE creator = ? AND idx = ? AND account = ?",
                (ref.creator, int(ref.index), account),
            ).fetchone()
            return row is not None

    def add_claim(self, ref: TaskRef, account: str, amount: int, *, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            INSERT INTO claims(creator, idx, account, amount, claimed_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (ref.creator, int(ref.index), account, to_db(amount), time.time()),
        )

    def remove_claim(self, ref: TaskRef, account: str, *, conn: sqlite3.Connection) -> bool:
        cur = conn.execute(
            "DELETE FROM claims WHERE creator = ? AND idx = ? AND account = ?",
            (ref.creator, int(ref.index), account),
        )
        return cur.rowcount == 1

    def claimed_accounts(self, ref: TaskRef, *, conn: sqlite3.Connection | None = None) -> dict[str, int]:
        with self._db.read(conn) as c:
            rows = c.execute(
                """
                SELECT account, amount
                FROM claims
                WHERE creator = ? AND idx = ?
                ORDER BY claimed_at ASC, account ASC
                """,
                (ref.creator, int(ref.index)),
            ).fetchall()
            return {r["account"]: from_db(r["amount"]) for r in rows}
