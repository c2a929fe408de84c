"""
Allowgate: reputation-gated allowlist backend.

Checks a wallet against independent reputation and social-graph providers,
applies fixed eligibility rules, and admits eligible wallets into a
Merkle allowlist whose proofs are redeemable by an on-chain verifier.
Clear separation between provider clients, the allowlist store, the
eligibility aggregator, notifications, and the API server.
"""

__version__ = "0.1.0"
