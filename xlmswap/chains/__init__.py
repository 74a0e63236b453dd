"""
Chain clients for xlmswap.

The Stellar client provides:
- Account lookup (sequence, balance, signers, thresholds)
- Transaction submission
- Debit history of an account
"""

from .stellar import StellarClient, StellarConfig

__all__ = ["StellarClient", "StellarConfig"]
