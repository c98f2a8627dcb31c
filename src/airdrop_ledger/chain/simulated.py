# src/airdrop_ledger/chain/simulated.py

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.errors import MetadataFetchFailed, TransferFailed
from ..core.ports import TokenMetadataPayload

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SimulatedTransfer:
    token: str
    receiver_id: str
    amount: int
    memo: str | None


class SimulatedTokenHost:
    """
    In-process stand-in for the token contracts, used for demos when no RPC
    endpoint is configured.

    Behavior:
    - ft_metadata -> metadata added with add_token(), otherwise the call fails
    - ft_transfer -> debits the ledger's balance on that token; a transfer the
      balance cannot cover is rejected with TransferFailed, like a real contract
    - credit() mirrors tokens arriving at the ledger (call it next to
      on_incoming_transfer)
    """

    def __init__(self) -> None:
        self._metadata: dict[str, TokenMetadataPayload] = {}
        self._balances: dict[str, int] = {}
        self.transfers: list[SimulatedTransfer] = []

    def add_token(self, token: str, *, name: str, symbol: str, decimals: int = 18) -> None:
        self._metadata[token] = {
            "spec": "ft-1.0.0",
            "name": name,
            "symbol": symbol,
            "icon": None,
            "reference": None,
            "reference_hash": None,
            "decimals": decimals,
        }

    def credit(self, token: str, amount: int) -> None:
        self._balances[token] = self._balances.get(token, 0) + int(amount)

    def balance_of(self, token: str) -> int:
        return self._balances.get(token, 0)

    async def ft_metadata(self, token: str) -> TokenMetadataPayload:
        meta = self._metadata.get(token)
        if meta is None:
            raise MetadataFetchFailed(f"account {token} has no token contract")
        return dict(meta)

    async def ft_transfer(
        self,
        *,
        token: str,
        receiver_id: str,
        amount: int,
        memo: str | None = None,
    ) -> None:
        balance = self._balances.get(token, 0)
        if amount > balance:
            raise TransferFailed(f"insufficient balance on {token}: {balance} < {amount}")
        self._balances[token] = balance - amount
        self.transfers.append(SimulatedTransfer(token=token, receiver_id=receiver_id, amount=amount, memo=memo))
        logger.debug("Simulated ft_transfer token=%s receiver=%s amount=%s", token, receiver_id, amount)
