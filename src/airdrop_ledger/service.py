# src/airdrop_ledger/service.py

"""
Service entrypoint.

Initializes logging, builds LedgerState, then runs the transfer dispatcher
until SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from .bootstrap import create_ledger_state
from .config import get_settings
from .logging_setup import setup_logging
from .transfers.transfer_dispatcher import run_transfer_dispatcher

logger = logging.getLogger(__name__)


async def _serve(state) -> None:
    settings = state.settings
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        # Some platforms do not support add_signal_handler.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(signum, stop.set)

    dispatcher = asyncio.create_task(
        run_transfer_dispatcher(
            state.transfers,
            interval_seconds=settings.dispatch_interval_seconds,
            batch_limit=settings.dispatch_batch_limit,
        )
    )

    try:
        await stop.wait()
        logger.info("Signal received, shutting down...")
    finally:
        dispatcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await dispatcher

        await state.tokens.aclose()


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (ledger=%s)...", settings.app_name, settings.contract_account_id)

    state = create_ledger_state(settings=settings)
    pending = state.tokens.pending_registrations()
    if pending:
        logger.warning(
            "%d token registration(s) never confirmed: %s",
            len(pending),
            ", ".join(p.address for p in pending),
        )

    try:
        asyncio.run(_serve(state))
    except KeyboardInterrupt:
        pass
    finally:
        state.db.close()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
