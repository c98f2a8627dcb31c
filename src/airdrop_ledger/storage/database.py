# src/airdrop_ledger/storage/database.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterable, Iterator
from pathlib import Path

logger = logging.getLogger(__name__)


class LedgerDB:
    """
    SQLite file shared by every ledger component.

    One public ledger operation == one transaction:
    - `transaction()` opens a connection and runs BEGIN IMMEDIATE, so writers
      are serialized by SQLite and a raised error rolls everything back
    - `transaction(conn)` joins a transaction the caller already holds; this is
      how one component's write becomes part of another component's invocation

    Thread-safety:
    - each top-level transaction/read opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "ledger.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("LedgerDB ready db=%s", self._db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        # isolation_level=None: transactions are opened explicitly below.
        conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

    def ensure_schema(self, statements: Iterable[str]) -> None:
        with self.transaction() as conn:
            for stmt in statements:
                conn.execute(stmt)

    # ---- transactions ----

    @contextlib.contextmanager
    def transaction(self, conn: sqlite3.Connection | None = None) -> Iterator[sqlite3.Connection]:
        if conn is not None:
            yield conn
            return

        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()
        finally:
            conn.close()

    @contextlib.contextmanager
    def read(self, conn: sqlite3.Connection | None = None) -> Iterator[sqlite3.Connection]:
        if conn is not None:
            yield conn
            return

        conn = self._get_conn()
        try:
            yield conn
        finally:
            conn.close()
