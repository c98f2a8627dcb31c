# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Use .env (local, gitignored) for anything environment-specific.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "AIRDROP_APP_NAME": "App display name (default: airdrop-ledger).",
    "AIRDROP_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Identity
    "AIRDROP_CONTRACT_ACCOUNT_ID": "Account the ledger receives deposits as (default: airdrop.testnet).",
    # Paths (gitignored)
    "AIRDROP_DATA_DIR": "Local data directory, also holds ledger.log (default: .local/airdrop).",
    "AIRDROP_LEDGER_DB_PATH": "Ledger SQLite path (default: <data_dir>/ledger.sqlite3).",
    # Token contracts / RPC
    "AIRDROP_RPC_URLS": (
        "Comma/space separated NEAR JSON-RPC endpoints, tried in order. "
        "Falls back to NEAR_RPC_URL. Empty => simulated token host. "
        "When set, a signing transfer host must be passed to create_ledger_state()."
    ),
    "AIRDROP_RPC_TIMEOUT_SECONDS": "Per-request RPC read timeout (default: 10).",
    "AIRDROP_METADATA_TIMEOUT_SECONDS": "Upper bound for one ft_metadata fetch during registration (default: 15).",
    # Storage deposit
    "AIRDROP_STORAGE_DEPOSIT_PER_TASK": "Native deposit required per created task (default: 1).",
    "AIRDROP_STORAGE_DEPOSIT_PER_CLAIM": "Additional native deposit per claim slot (default: 0).",
    # Inbound messages
    "AIRDROP_RECEIVER_MESSAGES_ENABLED": "Accept structured transfer messages such as FundTask (true/false).",
    # Transfer dispatcher
    "AIRDROP_DISPATCH_INTERVAL_SECONDS": "Polling interval of the transfer dispatcher (default: 5).",
    "AIRDROP_DISPATCH_BATCH_LIMIT": "Max pending transfers dispatched per poll (default: 32).",
}
