# src/airdrop_ledger/tokens/token_registry.py

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import time
from typing import Any

from ..core.errors import DuplicateToken, MetadataFetchFailed
from ..core.ports import TokenMetadataSource
from ..storage.database import LedgerDB
from .token_models import PendingRegistration, Token, TokenMetadata

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS tokens (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        address TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        symbol TEXT NOT NULL,
        decimals INTEGER NOT NULL,
        spec TEXT,
        icon TEXT,
        reference TEXT,
        reference_hash TEXT,
        registered_at REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pending_registrations (
        address TEXT PRIMARY KEY,
        requested_at REAL NOT NULL,
        attempts INTEGER NOT NULL DEFAULT 1
    )
    """,
)


def _decode_payload(payload: Any) -> Any:
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MetadataFetchFailed("metadata is not valid UTF-8") from exc
    if isinstance(payload, str):
        try:
            return json.loads(payload)
        except json.JSONDecodeError as exc:
            raise MetadataFetchFailed("metadata is not valid JSON") from exc
    return payload


class TokenRegistry:
    """
    Tokens approved for distribution.

    Registration is two-phase because the metadata lives in the token's own contract:
    - begin_registration(): persist a pending marker (nothing else)
    - complete_registration(): confirming step with the fetched payload or an error

    A token is immutable once registered. A registration whose confirming step never
    arrives leaves only the marker behind, and register() can simply be called again.
    """

    def __init__(
        self,
        db: LedgerDB,
        metadata_source: TokenMetadataSource,
        *,
        fetch_timeout_seconds: float = 15.0,
    ) -> None:
        self._db = db
        self._source = metadata_source
        self._timeout = max(0.1, float(fetch_timeout_seconds))
        self._db.ensure_schema(_SCHEMA)

    async def aclose(self) -> None:
        """Close the metadata source if it holds network resources."""
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

    # ---- low-level helpers ----

    @staticmethod
    def _row_to_token(row: sqlite3.Row) -> Token:
        return Token(
            address=row["address"],
            metadata=TokenMetadata(
                name=row["name"],
                symbol=row["symbol"],
                decimals=int(row["decimals"]),
                spec=row["spec"],
                icon=row["icon"],
                reference=row["reference"],
                reference_hash=row["reference_hash"],
            ),
            registered_at=float(row["registered_at"]),
        )

    # ---- two-phase registration ----

    def begin_registration(self, address: str, *, conn: sqlite3.Connection | None = None) -> PendingRegistration:
        """Initiating step. Fails DuplicateToken if the token is already registered."""
        address = (address or "").strip()
        if not address:
            raise ValueError("token address is required")

        now = time.time()
        with self._db.transaction(conn) as c:
            if self.is_registered(address, conn=c):
                raise DuplicateToken(f"token {address} already registered")

            c.execute(
                """
                INSERT INTO pending_registrations(address, requested_at, attempts)
                VALUES (?, ?, 1)
                ON CONFLICT(address) DO UPDATE SET
                    requested_at = excluded.requested_at,
                    attempts = attempts + 1
                """,
                (address, now),
            )
            row = c.execute(
                "SELECT * FROM pending_registrations WHERE address = ?", (address,)
            ).fetchone()

        pending = PendingRegistration(
            address=row["address"],
            requested_at=float(row["requested_at"]),
            attempts=int(row["attempts"]),
        )
        logger.info("Token registration started address=%s attempt=%s", address, pending.attempts)
        return pending

    def complete_registration(
        self,
        address: str,
        payload: Any,
        *,
        error: str | None = None,
    ) -> TokenMetadata:
        """
        Confirming step.

        - error set, or payload not decodable as metadata -> marker cleared, MetadataFetchFailed
        - token registered meanwhile -> DuplicateToken, nothing changes
        - no marker (stale confirmation) -> MetadataFetchFailed, nothing changes
        """
        address = (address or "").strip()
        failure: MetadataFetchFailed | None = None
        metadata: TokenMetadata | None = None

        with self._db.transaction() as c:
            if self.is_registered(address, conn=c):
                raise DuplicateToken(f"token {address} already registered")

            marker = c.execute(
                "SELECT 1 FROM pending_registrations WHERE address = ?", (address,)
            ).fetchone()
            if marker is None:
                raise MetadataFetchFailed(f"no pending registration for {address}")

            c.execute("DELETE FROM pending_registrations WHERE address = ?", (address,))

            if error is not None:
                failure = MetadataFetchFailed(f"ft_metadata failed for {address}: {error}")
            else:
                try:
                    metadata = TokenMetadata.from_payload(_decode_payload(payload))
                except MetadataFetchFailed as exc:
                    failure = exc

            if metadata is not None:
                c.execute(
                    """
                    INSERT INTO tokens(
                        address, name, symbol, decimals,
                        spec, icon, reference, reference_hash, registered_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        address,
                        metadata.name,
                        metadata.symbol,
                        metadata.decimals,
                        metadata.spec,
                        metadata.icon,
                        metadata.reference,
                        metadata.reference_hash,
                        time.time(),
                    ),
                )

        if metadata is None:
            failure = failure or MetadataFetchFailed(f"no metadata for {address}")
            logger.warning("Token registration failed address=%s: %s", address, failure.message)
            raise failure

        logger.info(
            "Token registered address=%s symbol=%s decimals=%s",
            address,
            metadata.symbol,
            metadata.decimals,
        )
        return metadata

    async def register(self, address: str) -> TokenMetadata:
        """Register a token: initiate, fetch `ft_metadata` (bounded by a timeout), confirm."""
        address = (address or "").strip()
        self.begin_registration(address)

        error: str | None = None
        payload: Any = None
        try:
            payload = await asyncio.wait_for(self._source.ft_metadata(address), timeout=self._timeout)
        except asyncio.TimeoutError:
            error = f"timed out after {self._timeout:.1f}s"
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"

        return self.complete_registration(address, payload, error=error)

    # ---- reads ----

    def is_registered(self, address: str, *, conn: sqlite3.Connection | None = None) -> bool:
        with self._db.read(conn) as c:
            row = c.execute("SELECT 1 FROM tokens WHERE address = ?", (address,)).fetchone()
            return row is not None

    def get(self, address: str) -> Token | None:
        with self._db.read() as c:
            row = c.execute("SELECT * FROM tokens WHERE address = ?", (address,)).fetchone()
            return self._row_to_token(row) if row else None

    def list(self) -> list[TokenMetadata]:
        """All registered metadata, in registration order."""
        return [t.metadata for t in self.list_tokens()]

    def list_tokens(self) -> list[Token]:
        with self._db.read() as c:
            rows = c.execute("SELECT * FROM tokens ORDER BY seq ASC").fetchall()
            return [self._row_to_token(r) for r in rows]

    def pending_registrations(self) -> list[PendingRegistration]:
        with self._db.read() as c:
            rows = c.execute(
                "SELECT * FROM pending_registrations ORDER BY requested_at ASC"
            ).fetchall()
            return [
                PendingRegistration(
                    address=r["address"],
                    requested_at=float(r["requested_at"]),
                    attempts=int(r["attempts"]),
                )
                for r in rows
            ]
