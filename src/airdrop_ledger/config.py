# src/airdrop_ledger/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole ledger.
- No secrets required at import time.
- Every component receives settings explicitly (tests pass their own object).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

ENV_PREFIX = "AIRDROP"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Identity of this ledger on the host ----
    contract_account_id: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    ledger_db_path: Path

    # ---- Token contracts / RPC ----
    rpc_urls: List[str]
    rpc_timeout_seconds: float
    metadata_timeout_seconds: float

    # ---- Storage deposit (native currency, smallest unit) ----
    storage_deposit_per_task: int
    storage_deposit_per_claim: int

    # ---- Inbound messages ----
    receiver_messages_enabled: bool

    # ---- Transfer dispatcher ----
    dispatch_interval_seconds: float
    dispatch_batch_limit: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _first_env(_k("APP_NAME"), default="airdrop-ledger") or "airdrop-ledger"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        contract_account_id = _env(_k("CONTRACT_ACCOUNT_ID"), "airdrop.testnet").strip()

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/airdrop"))
        ledger_db_path = _env_path(_k("LEDGER_DB_PATH"), data_dir / "ledger.sqlite3")

        rpc_urls = _env_list(_k("RPC_URLS"), _env_list("NEAR_RPC_URL", []))
        rpc_timeout_seconds = _env_float(_k("RPC_TIMEOUT_SECONDS"), 10.0)
        metadata_timeout_seconds = _env_float(_k("METADATA_TIMEOUT_SECONDS"), 15.0)

        storage_deposit_per_task = _env_int(_k("STORAGE_DEPOSIT_PER_TASK"), 1)
        storage_deposit_per_claim = _env_int(_k("STORAGE_DEPOSIT_PER_CLAIM"), 0)

        receiver_messages_enabled = _env_bool(_k("RECEIVER_MESSAGES_ENABLED"), False)

        dispatch_interval_seconds = _env_float(_k("DISPATCH_INTERVAL_SECONDS"), 5.0)
        dispatch_batch_limit = _env_int(_k("DISPATCH_BATCH_LIMIT"), 32)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            contract_account_id=contract_account_id,
            data_dir=data_dir,
            ledger_db_path=ledger_db_path,
            rpc_urls=rpc_urls,
            rpc_timeout_seconds=rpc_timeout_seconds,
            metadata_timeout_seconds=metadata_timeout_seconds,
            storage_deposit_per_task=max(0, storage_deposit_per_task),
            storage_deposit_per_claim=max(0, storage_deposit_per_claim),
            receiver_messages_enabled=receiver_messages_enabled,
            dispatch_interval_seconds=dispatch_interval_seconds,
            dispatch_batch_limit=max(1, dispatch_batch_limit),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
