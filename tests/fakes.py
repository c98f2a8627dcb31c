# tests/fakes.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from airdrop_ledger.core.errors import MetadataFetchFailed, TransferFailed


@dataclass(slots=True)
class SentTransfer:
    token: str
    receiver_id: str
    amount: int
    memo: str | None


@dataclass(slots=True)
class FakeTokenHost:
    """
    Deterministic token contracts for unit tests (metadata source + transfer host).

    - metadata: address -> raw ft_metadata payload
    - fail_receivers: ft_transfer to these accounts is rejected (TransferFailed)
    - unknown_receivers: ft_transfer to these accounts raises a non-ledger error,
      i.e. the outcome is unknown
    - hang_metadata: ft_metadata never returns (exercises the registration timeout)
    """

    metadata: dict[str, Any] = field(default_factory=dict)
    fail_receivers: set[str] = field(default_factory=set)
    unknown_receivers: set[str] = field(default_factory=set)
    hang_metadata: bool = False

    metadata_calls: list[str] = field(default_factory=list)
    sent: list[SentTransfer] = field(default_factory=list)

    def add_token(self, address: str, *, symbol: str = "TKN", decimals: int = 18) -> dict[str, Any]:
        payload = {
            "spec": "ft-1.0.0",
            "name": f"{symbol} token",
            "symbol": symbol,
            "icon": None,
            "reference": None,
            "reference_hash": None,
            "decimals": decimals,
        }
        self.metadata[address] = payload
        return payload

    async def ft_metadata(self, token: str) -> Any:
        self.metadata_calls.append(token)
        if self.hang_metadata:
            await asyncio.sleep(3600)
        if token not in self.metadata:
            raise MetadataFetchFailed(f"{token} has no ft_metadata")
        return self.metadata[token]

    async def ft_transfer(
        self,
        *,
        token: str,
        receiver_id: str,
        amount: int,
        memo: str | None = None,
    ) -> None:
        if receiver_id in self.fail_receivers:
            raise TransferFailed(f"{receiver_id} is not registered on {token}")
        if receiver_id in self.unknown_receivers:
            raise ConnectionError("connection reset while waiting for the receipt")
        self.sent.append(SentTransfer(token=token, receiver_id=receiver_id, amount=amount, memo=memo))


TOKEN = "wrap.testnet"
LEDGER_ACCOUNT = "airdrop.testnet"


def register_token(state, host: FakeTokenHost, address: str, *, symbol: str = "TKN") -> None:
    """Synchronous registration: both phases driven by the test itself."""
    payload = host.add_token(address, symbol=symbol)
    state.tokens.begin_registration(address)
    state.tokens.complete_registration(address, payload)
