# src/airdrop_ledger/core/ports.py

"""
Ports (interfaces) used by the ledger core.

The core depends on Protocols instead of concrete token-contract adapters.
This keeps the RPC client and the simulated host swappable and makes testing easier.
"""

from __future__ import annotations

from typing import Any, Awaitable, Protocol

TokenMetadataPayload = dict[str, Any]
# Raw NEP-148 metadata object as returned by a token's `ft_metadata` view call.


class TokenMetadataSource(Protocol):
    """Read-only access to a token contract's metadata."""

    def ft_metadata(self, token: str) -> Awaitable[TokenMetadataPayload]: ...


class TokenTransferHost(Protocol):
    """
    Host-side port: how the ledger moves tokens it holds in custody.

    Contract:
    - returning normally means the token contract confirmed the transfer
    - raising TransferFailed means the token contract rejected it
    - any other exception means the outcome is unknown
    """

    def ft_transfer(
            self,
            *,
            token: str,
            receiver_id: str,
            amount: int,
            memo: str | None = None,
    ) -> Awaitable[None]: ...


class ClaimReconciler(Protocol):
    """The compensating action the transfer gateway runs on a failed payout."""

    def rollback_claim(self, task_ref: Any, account: str, *, conn: Any = None) -> bool: ...
