# src/airdrop_ledger/inbound/router.py

from __future__ import annotations

import logging

from ..core.amounts import positive_u128
from ..core.errors import FeatureDisabled
from ..deposits.deposit_ledger import DepositLedger
from ..storage.database import LedgerDB
from ..tasks.task_manager import TaskManager
from ..tasks.task_models import TaskRef
from .messages import Execute, FundTask, parse_receiver_message

logger = logging.getLogger(__name__)


class InboundCallbackRouter:
    """
    The ledger's single "transfer with notification" receiver.

    `token_contract` is the caller as authenticated by the host: it is the only
    party whose word about the amount counts. `sender_id` is the token
    contract's claim about who sent the tokens and is used for bookkeeping only.
    """

    def __init__(
        self,
        db: LedgerDB,
        deposits: DepositLedger,
        tasks: TaskManager,
        *,
        messages_enabled: bool = False,
    ) -> None:
        self._db = db
        self._deposits = deposits
        self._tasks = tasks
        self._messages_enabled = messages_enabled

    def on_incoming_transfer(self, token_contract: str, sender_id: str, amount: int, msg: str) -> int:
        """Returns the amount consumed (always the full amount: nothing is refunded)."""
        if msg and not self._messages_enabled:
            logger.info("Rejected transfer message from %s via %s: messages disabled", sender_id, token_contract)
            raise FeatureDisabled("transfer messages are not enabled")

        value = positive_u128(amount)

        if not msg:
            with self._db.transaction() as c:
                self._deposits.record_deposit(sender_id, token_contract, value, conn=c)
                activated = self._tasks.activate_pending_tasks(sender_id, token_contract, conn=c)
            if activated:
                logger.info("Deposit from %s activated tasks %s", sender_id, ", ".join(map(str, activated)))
            return value

        message = parse_receiver_message(msg)

        if isinstance(message, FundTask):
            ref = TaskRef(sender_id, message.index)
            # Deposit and funding commit together; a task that still cannot be
            # funded aborts the whole notification, deposit included.
            with self._db.transaction() as c:
                self._deposits.record_deposit(sender_id, token_contract, value, conn=c)
                self._tasks.fund_task(ref, conn=c)
            logger.info("FundTask deposit from %s for task %s", sender_id, ref)
            return value

        if isinstance(message, Execute):
            raise FeatureDisabled("instant swap is not open")

        raise FeatureDisabled(f"unsupported message {type(message).__name__}")
