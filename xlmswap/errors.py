"""
Exceptions raised by xlmswap.

Every failure is surfaced to the caller as one of these; nothing is retried
or recovered locally.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class SwapError(Exception):
    """Base exception for atomic swap errors"""
    pass


class ValidationError(SwapError, ValueError):
    """Malformed input: wrong size, encoding or key type"""
    pass


class FetchError(SwapError):
    """Account or transaction lookup failed"""
    pass


class TransactionBuildError(SwapError):
    """A transaction could not be built, signed or decoded"""
    pass


class SubmissionError(SwapError):
    """The ledger rejected a submitted transaction."""
    def __init__(self, detail: str, result_codes: Optional[Dict[str, Any]] = None,
                 extras: Optional[Dict[str, Any]] = None):
        self.detail = detail or "transaction submission failed"
        self.result_codes = result_codes or {}
        self.extras = extras or {}
        super().__init__(self._format())

    def _format(self) -> str:
        message = self.detail
        if self.result_codes:
            message += f"\nResultcodes:\n{self.result_codes}"
        if self.extras:
            message += "\nExtras:"
            for key, value in self.extras.items():
                if key == "result_codes":
                    continue
                message += f"\n{key}: {value}"
        return message


class AuditViolation(Enum):
    """Ways a holding account can deviate from the swap contract."""
    THRESHOLD_MISMATCH = "threshold_mismatch"
    DUPLICATE_SIGNER = "duplicate_signer"
    WEIGHT_MISMATCH = "weight_mismatch"
    MISSING_SIGNER = "missing_signer"
    UNKNOWN_SIGNER_TYPE = "unknown_signer_type"
    REFUND_HASH_MISMATCH = "refund_hash_mismatch"
    MALFORMED_REFUND_TRANSACTION = "malformed_refund_transaction"


class AuditInvariantViolation(SwapError):
    """The holding account does not encode the agreed contract."""
    def __init__(self, kind: AuditViolation, message: str):
        self.kind = kind
        super().__init__(message)


class ExtractionFailure(Enum):
    """Reasons a secret could not be recovered."""
    NOT_YET_REDEEMED = "not_yet_redeemed"
    AMBIGUOUS_SPEND = "ambiguous_spend"
    PREIMAGE_NOT_FOUND = "preimage_not_found"


class SecretExtractionError(SwapError):
    """No secret could be recovered from the holding account."""
    def __init__(self, kind: ExtractionFailure, message: str):
        self.kind = kind
        super().__init__(message)


def result_codes_of(extras: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Pull the transaction/operation result codes out of Horizon extras."""
    if not extras:
        return {}
    return extras.get("result_codes") or {}


__all__: List[str] = [
    "SwapError",
    "ValidationError",
    "FetchError",
    "TransactionBuildError",
    "SubmissionError",
    "AuditViolation",
    "AuditInvariantViolation",
    "ExtractionFailure",
    "SecretExtractionError",
    "result_codes_of",
]
