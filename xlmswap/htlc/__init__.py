"""
HTLC (Hash Time-Locked Contract) implementation for Stellar.

Stellar HTLCs are holding accounts whose signers ensure:
1. Funds can only be claimed by the recipient with knowledge of a secret (preimage)
2. Funds can be refunded with a pre-authorized transaction after a timeout

- holding: holding account creation and refund transaction
- audit: verification of a counterparty's holding account
- redeem: redeem and refund submission
"""

from .holding import HoldingAccountBuilder, RefundTransactionFactory
from .audit import ContractAuditor, SignerRole, OperationKind
from .redeem import RedeemTransactionBuilder, RefundSubmitter

__all__ = [
    "HoldingAccountBuilder",
    "RefundTransactionFactory",
    "ContractAuditor",
    "SignerRole",
    "OperationKind",
    "RedeemTransactionBuilder",
    "RefundSubmitter",
]
