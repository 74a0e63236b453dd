"""
Core types and constants for xlmswap.
"""

import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Tuple

from stellar_sdk import TransactionEnvelope


# =============================================================================
# Constants
# =============================================================================

SECRET_SIZE = 32                # bytes
LOCK_TIME = 48 * 60 * 60        # initiator lock duration, seconds
PARTICIPANT_LOCK_TIME = LOCK_TIME // 2

# Largest decorated signature the ledger accepts (XDR opaque<64>)
MAX_SIGNATURE_SIZE = 64

# Holding account signer algebra
RECIPIENT_WEIGHT = 1
SECRET_HASH_WEIGHT = 1
REFUND_HASH_WEIGHT = 2
HOLDING_THRESHOLD = 2
MASTER_WEIGHT = 0


# =============================================================================
# Types
# =============================================================================

@dataclass
class Thresholds:
    """Account signing thresholds."""
    low: int = 0
    medium: int = 0
    high: int = 0


@dataclass
class SignerEntry:
    """One signer of an account, as reported by Horizon."""
    type: str           # ed25519_public_key, sha256_hash, preauth_tx, ...
    key: str            # StrKey encoded
    weight: int


@dataclass
class AccountInfo:
    """Ledger view of an account."""
    address: str
    sequence: int
    balance: str        # native balance, decimal string
    signers: List[SignerEntry] = field(default_factory=list)
    thresholds: Thresholds = field(default_factory=Thresholds)


@dataclass
class SettledTransaction:
    """A transaction settled on the ledger."""
    hash: str
    signatures: List[str]   # base64 encoded decorated signature payloads
    ledger: Optional[int] = None


@dataclass
class HoldingAccount:
    """A configured atomic swap holding account."""
    address: str
    funding_address: str
    recipient: str
    amount: str
    secret_hash: str        # hex
    locktime: int           # unix timestamp
    refund_transaction: TransactionEnvelope
    refund_transaction_hash: str  # hex

    @property
    def refund_transaction_xdr(self) -> str:
        return self.refund_transaction.to_xdr()


@dataclass
class AuditResult:
    """Public parameters recovered from an audited holding account."""
    contract_address: str
    balance: str
    recipient: str
    refund_address: str
    secret_hash: str        # hex
    locktime: int           # unix timestamp

    @property
    def locktime_utc(self) -> datetime:
        return datetime.fromtimestamp(self.locktime, tz=timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractAddress": self.contract_address,
            "contractValue": self.balance,
            "recipientAddress": self.recipient,
            "refundAddress": self.refund_address,
            "secretHash": self.secret_hash,
            "Locktime": str(self.locktime_utc),
        }


# =============================================================================
# HTLC Utilities
# =============================================================================

def sha256(data: bytes) -> bytes:
    """SHA256 hash."""
    return hashlib.sha256(data).digest()


def generate_secret() -> Tuple[bytes, bytes]:
    """
    Generate a random secret and its SHA256 hash.

    Returns:
        (secret, secret_hash)
    """
    secret = secrets.token_bytes(SECRET_SIZE)
    return secret, sha256(secret)


def verify_preimage(preimage: bytes, secret_hash: bytes) -> bool:
    """Verify that SHA256(preimage) == secret_hash."""
    return sha256(preimage) == secret_hash
