# src/airdrop_ledger/transfers/transfer_dispatcher.py

"""
Transfer dispatcher.

A small polling loop that:
- fetches pending payout requests,
- claims each one (pending -> sent) so it is handed to the host once,
- calls the token host,
- feeds the outcome back into the gateway's confirming step.

Claims are committed before their transfers ever reach this loop, so a slow or
stopped dispatcher delays payouts but never lets an account claim twice.
"""

from __future__ import annotations

import asyncio
import logging

from .transfer_gateway import TransferGateway
from .transfer_models import TransferStatus

logger = logging.getLogger(__name__)


async def run_transfer_dispatcher(
        gateway: TransferGateway,
        *,
        interval_seconds: float = 5.0,
        batch_limit: int = 32,
) -> None:
    """
    Simple polling dispatcher.

    Every interval_seconds:
    - fetch pending transfers (oldest first, at most batch_limit)
    - dispatch each one:
        * confirmed      -> succeeded
        * rejected       -> failed, claim rolled back
        * unknown result -> stays sent until an explicit confirmation arrives

    To stop the dispatcher, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            batch = gateway.list_transfers(status=TransferStatus.PENDING, limit=int(batch_limit))
        except Exception:
            logger.exception("list_transfers failed")
            batch = []

        for transfer in batch:
            try:
                outcome = await gateway.dispatch(transfer.id)
            except Exception:
                logger.exception("dispatch failed transfer_id=%s", transfer.id)
                continue

            if outcome is not None:
                logger.info("Transfer %s -> %s", transfer.id, outcome.value)

        await asyncio.sleep(sleep_s)
