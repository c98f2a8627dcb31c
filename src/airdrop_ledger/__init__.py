"""
Multi-token airdrop ledger.

Subpackages:
- tokens: registry of tokens approved for distribution
- deposits: append-only log of inbound transfers (custody)
- tasks: distribution tasks, funding and claims
- transfers: outbound payouts and their confirmation/rollback
- inbound: entry point for token contract transfer notifications
- chain: adapters for the external token contracts (RPC, simulated host)
"""

__version__ = "0.1.0"
