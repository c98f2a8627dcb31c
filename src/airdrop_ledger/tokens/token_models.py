# src/airdrop_ledger/tokens/token_models.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..core.errors import MetadataFetchFailed


@dataclass(frozen=True, slots=True)
class TokenMetadata:
    """NEP-148 fungible token metadata, as stored at registration time."""

    name: str
    symbol: str
    decimals: int

    spec: str | None = None
    icon: str | None = None
    reference: str | None = None
    reference_hash: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> TokenMetadata:
        """
        Validate a raw `ft_metadata` result.

        Raises MetadataFetchFailed for anything that is not a metadata object:
        non-dict payloads, missing/empty name or symbol, decimals outside u8.
        """
        if not isinstance(payload, dict):
            raise MetadataFetchFailed(f"metadata must be an object, got {type(payload).__name__}")

        name = payload.get("name")
        symbol = payload.get("symbol")
        decimals = payload.get("decimals")

        if not isinstance(name, str) or not name.strip():
            raise MetadataFetchFailed("metadata.name is missing")
        if not isinstance(symbol, str) or not symbol.strip():
            raise MetadataFetchFailed("metadata.symbol is missing")
        if isinstance(decimals, bool) or not isinstance(decimals, int) or not 0 <= decimals <= 255:
            raise MetadataFetchFailed(f"metadata.decimals must be a u8, got {decimals!r}")

        def opt(key: str) -> str | None:
            val = payload.get(key)
            if val is None:
                return None
            if not isinstance(val, str):
                raise MetadataFetchFailed(f"metadata.{key} must be a string")
            return val

        return cls(
            name=name,
            symbol=symbol,
            decimals=decimals,
            spec=opt("spec"),
            icon=opt("icon"),
            reference=opt("reference"),
            reference_hash=opt("reference_hash"),
        )


@dataclass(frozen=True, slots=True)
class Token:
    address: str
    metadata: TokenMetadata
    registered_at: float


@dataclass(frozen=True, slots=True)
class PendingRegistration:
    address: str
    requested_at: float
    attempts: int
