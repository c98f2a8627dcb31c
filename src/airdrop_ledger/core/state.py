# src/airdrop_ledger/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..deposits.deposit_ledger import DepositLedger
from ..inbound.router import InboundCallbackRouter
from ..storage.database import LedgerDB
from ..tasks.task_manager import TaskManager
from ..tokens.token_registry import TokenRegistry
from ..transfers.transfer_gateway import TransferGateway


@dataclass
class LedgerState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    db: LedgerDB
    tokens: TokenRegistry
    deposits: DepositLedger
    transfers: TransferGateway
    tasks: TaskManager
    inbound: InboundCallbackRouter
