"""
xlmswap - Stellar Atomic Swap Library

Trustless cross-chain atomic swaps on Stellar. The hash lock and time lock
are expressed with the signers and thresholds of a holding account instead
of a script.

Usage:
    from xlmswap import StellarClient, StellarConfig, SwapExecutor

    config = StellarConfig.from_env(testnet=True)
    executor = SwapExecutor(StellarClient(config), config)

    # Lock 10 XLM for the participant, 48h refund locktime
    result = executor.initiate(initiator_keypair, participant_address, "10")
    print(result.holding.refund_transaction_xdr)
"""

from .core import (
    AccountInfo,
    AuditResult,
    HoldingAccount,
    SettledTransaction,
    SignerEntry,
    Thresholds,
    generate_secret,
    verify_preimage,
    LOCK_TIME,
    PARTICIPANT_LOCK_TIME,
    SECRET_SIZE,
)

from .errors import (
    SwapError,
    ValidationError,
    FetchError,
    TransactionBuildError,
    SubmissionError,
    AuditViolation,
    AuditInvariantViolation,
    ExtractionFailure,
    SecretExtractionError,
)

from .chains.stellar import StellarClient, StellarConfig

from .htlc.holding import HoldingAccountBuilder, RefundTransactionFactory
from .htlc.audit import ContractAuditor, SignerRole, OperationKind
from .htlc.redeem import RedeemTransactionBuilder, RefundSubmitter

from .swap.extractor import SecretExtractor
from .swap.executor import SwapExecutor, InitiateResult, ParticipateResult

__version__ = "0.1.0"
__all__ = [
    # Core types
    "AccountInfo",
    "AuditResult",
    "HoldingAccount",
    "SettledTransaction",
    "SignerEntry",
    "Thresholds",
    # Utilities
    "generate_secret",
    "verify_preimage",
    "LOCK_TIME",
    "PARTICIPANT_LOCK_TIME",
    "SECRET_SIZE",
    # Errors
    "SwapError",
    "ValidationError",
    "FetchError",
    "TransactionBuildError",
    "SubmissionError",
    "AuditViolation",
    "AuditInvariantViolation",
    "ExtractionFailure",
    "SecretExtractionError",
    # Client
    "StellarClient",
    "StellarConfig",
    # HTLC
    "HoldingAccountBuilder",
    "RefundTransactionFactory",
    "ContractAuditor",
    "SignerRole",
    "OperationKind",
    "RedeemTransactionBuilder",
    "RefundSubmitter",
    # Swap
    "SecretExtractor",
    "SwapExecutor",
    "InitiateResult",
    "ParticipateResult",
]
