# src/airdrop_ledger/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Components whose INFO records are custody state transitions
# (registrations, deposits, task funding, claims, payouts, rollbacks).
_AUDIT_LOGGERS = (
    "airdrop_ledger.tokens",
    "airdrop_ledger.deposits",
    "airdrop_ledger.tasks",
    "airdrop_ledger.transfers.transfer_gateway",
    "airdrop_ledger.inbound",
)


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console shows ledger activity; the dispatcher polls every few seconds, so
    its per-transfer lines only reach the console at WARNING+.
    Everything from other libraries (httpx, py.warnings) needs ERROR+.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("airdrop_ledger."):
            return record.levelno >= logging.ERROR
        if name == "airdrop_ledger.transfers.transfer_dispatcher":
            return record.levelno >= logging.WARNING
        return True


class _AuditFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.startswith(_AUDIT_LOGGERS)


def setup_logging(
    *,
    log_dir: str | Path = ".local/airdrop",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Install three handlers on the root logger:
    - stderr: filtered, at console_level
    - <log_dir>/ledger.log: everything at file_level
    - <log_dir>/audit.log: INFO+ state transitions only, one line per change,
      so custody movements can be reviewed without the debug noise

    Call once at startup; existing root handlers are replaced.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    full = logging.FileHandler(str(log_dir / "ledger.log"), encoding="utf-8")
    full.setLevel(file_level)
    full.setFormatter(fmt)
    root.addHandler(full)

    audit = logging.FileHandler(str(log_dir / "audit.log"), encoding="utf-8")
    audit.setLevel(logging.INFO)
    audit.setFormatter(logging.Formatter("%(asctime)s %(name)s: %(message)s", datefmt="%Y-%m-%dT%H:%M:%S"))
    audit.addFilter(_AuditFilter())
    root.addHandler(audit)

    logging.captureWarnings(True)

    # Request lines from the RPC client's transport are DEBUG noise even in ledger.log.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
