# src/airdrop_ledger/bootstrap.py

"""
Ledger bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the token-contract adapters (RPC or simulated),
- wires the five ledger components into LedgerState.
"""

from __future__ import annotations

import logging

from .chain.rpc_client import NearRpcClient
from .chain.simulated import SimulatedTokenHost
from .config import get_settings
from .core.ports import TokenMetadataSource, TokenTransferHost
from .core.state import LedgerState
from .deposits.deposit_ledger import DepositLedger
from .inbound.router import InboundCallbackRouter
from .storage.database import LedgerDB
from .tasks.task_manager import TaskManager
from .tokens.token_registry import TokenRegistry
from .transfers.transfer_gateway import TransferGateway

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.ledger_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_ledger_state(
    *,
    settings=None,
    metadata_source: TokenMetadataSource | None = None,
    transfer_host: TokenTransferHost | None = None,
) -> LedgerState:
    """
    Create LedgerState from the provided settings.

    Keeping settings and adapters injectable makes the ledger easier to test and
    avoids hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    simulated: SimulatedTokenHost | None = None
    rpc_urls = list(getattr(settings, "rpc_urls", []) or [])

    if transfer_host is None and rpc_urls:
        # Real payouts need a signing host; the simulated one holds no custody.
        raise RuntimeError(
            "RPC endpoints are configured but no transfer host was provided. "
            "Pass transfer_host= or unset AIRDROP_RPC_URLS to run on the simulated host."
        )

    if metadata_source is None:
        if rpc_urls:
            metadata_source = NearRpcClient(rpc_urls, timeout_seconds=settings.rpc_timeout_seconds)
        else:
            # Fallback for demos / local runs without an RPC endpoint.
            simulated = SimulatedTokenHost()
            metadata_source = simulated
            logger.info("No RPC endpoints configured; token metadata comes from the simulated host.")

    if transfer_host is None:
        transfer_host = simulated or SimulatedTokenHost()
        logger.info("Outbound transfers go to the simulated token host.")

    db = LedgerDB(settings.ledger_db_path)
    tokens = TokenRegistry(db, metadata_source, fetch_timeout_seconds=settings.metadata_timeout_seconds)
    deposits = DepositLedger(db, tokens, receiver_id=settings.contract_account_id)
    transfers = TransferGateway(db, transfer_host)
    tasks = TaskManager(
        db,
        tokens,
        deposits,
        transfers,
        storage_deposit_per_task=settings.storage_deposit_per_task,
        storage_deposit_per_claim=settings.storage_deposit_per_claim,
    )
    transfers.attach_reconciler(tasks)
    inbound = InboundCallbackRouter(
        db,
        deposits,
        tasks,
        messages_enabled=bool(getattr(settings, "receiver_messages_enabled", False)),
    )

    return LedgerState(
        settings=settings,
        db=db,
        tokens=tokens,
        deposits=deposits,
        transfers=transfers,
        tasks=tasks,
        inbound=inbound,
    )
