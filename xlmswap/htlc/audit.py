"""
Holding account audit for xlmswap.

Before funding their own leg, a counterparty verifies that the holding
account encodes exactly the agreed contract and recovers its public
parameters. Any deviation is rejected.
"""

import logging
from enum import Enum
from typing import Optional

from stellar_sdk import StrKey, TransactionEnvelope
from stellar_sdk.exceptions import SdkError
from stellar_sdk.operation import AccountMerge, CreateAccount, Operation, SetOptions

from ..core import (
    AuditResult,
    HOLDING_THRESHOLD,
    RECIPIENT_WEIGHT,
    REFUND_HASH_WEIGHT,
    SECRET_HASH_WEIGHT,
    SignerEntry,
)
from ..chains.stellar import StellarClient, StellarConfig
from ..errors import AuditInvariantViolation, AuditViolation

log = logging.getLogger(__name__)


class SignerRole(Enum):
    """Role of a holding account signer, keyed by its Horizon signer type."""
    RECIPIENT = "ed25519_public_key"
    SECRET_HASH_COMMITMENT = "sha256_hash"
    REFUND_HASH_COMMITMENT = "preauth_tx"
    UNKNOWN = "unknown"

    @classmethod
    def of(cls, signer: SignerEntry) -> "SignerRole":
        try:
            return cls(signer.type)
        except ValueError:
            return cls.UNKNOWN


class OperationKind(Enum):
    """Ledger operation kinds the swap protocol distinguishes."""
    CREATE_ACCOUNT = "create_account"
    SET_OPTIONS = "set_options"
    ACCOUNT_MERGE = "account_merge"
    OTHER = "other"

    @classmethod
    def of(cls, operation: Operation) -> "OperationKind":
        return _OPERATION_KINDS.get(type(operation), cls.OTHER)


_OPERATION_KINDS = {
    CreateAccount: OperationKind.CREATE_ACCOUNT,
    SetOptions: OperationKind.SET_OPTIONS,
    AccountMerge: OperationKind.ACCOUNT_MERGE,
}

EXPECTED_WEIGHTS = {
    SignerRole.RECIPIENT: RECIPIENT_WEIGHT,
    SignerRole.SECRET_HASH_COMMITMENT: SECRET_HASH_WEIGHT,
    SignerRole.REFUND_HASH_COMMITMENT: REFUND_HASH_WEIGHT,
}

ROLE_NAMES = {
    SignerRole.RECIPIENT: "recipient",
    SignerRole.SECRET_HASH_COMMITMENT: "secret hash",
    SignerRole.REFUND_HASH_COMMITMENT: "refund transaction hash",
}


def _decode_signer_key(role: SignerRole, key: str) -> bytes:
    """Raw bytes committed to by a hash signer."""
    try:
        if role is SignerRole.SECRET_HASH_COMMITMENT:
            return StrKey.decode_sha256_hash(key)
        return StrKey.decode_pre_auth_tx(key)
    except (SdkError, ValueError) as e:
        raise AuditInvariantViolation(
            AuditViolation.UNKNOWN_SIGNER_TYPE,
            f"Faulty encoded {ROLE_NAMES[role]} signer {key}: {e}",
        ) from e


class ContractAuditor:
    """
    Verifies holding accounts against the atomic swap contract.

    Read only: the ledger is queried, never modified.
    """

    def __init__(self, client: StellarClient, config: StellarConfig):
        self.client = client
        self.config = config

    def audit(self, holding_address: str,
              refund_transaction: TransactionEnvelope) -> AuditResult:
        """
        Audit a holding account against a claimed refund transaction.

        Args:
            holding_address: Holding account to verify
            refund_transaction: Refund transaction received from the counterparty

        Returns:
            AuditResult with balance, recipient, refund address, secret hash
            and locktime

        Raises:
            AuditInvariantViolation: the contract deviates from the protocol
        """
        account = self.client.get_account(holding_address)

        thresholds = account.thresholds
        if not (thresholds.low == thresholds.medium == thresholds.high == HOLDING_THRESHOLD):
            raise AuditInvariantViolation(
                AuditViolation.THRESHOLD_MISMATCH,
                f"Holding account signing thresholds are wrong. "
                f"Thresholds: High: {thresholds.high}, Medium: {thresholds.medium}, "
                f"Low: {thresholds.low}",
            )

        found = {}
        for signer in account.signers:
            if signer.weight == 0:
                # disabled master key
                continue
            role = SignerRole.of(signer)
            if role is SignerRole.UNKNOWN:
                raise AuditInvariantViolation(
                    AuditViolation.UNKNOWN_SIGNER_TYPE,
                    f"Unexpected signer type: {signer.type}",
                )
            if role in found:
                raise AuditInvariantViolation(
                    AuditViolation.DUPLICATE_SIGNER,
                    f"Multiple {ROLE_NAMES[role]} signers: {found[role].key} and {signer.key}",
                )
            if signer.weight != EXPECTED_WEIGHTS[role]:
                raise AuditInvariantViolation(
                    AuditViolation.WEIGHT_MISMATCH,
                    f"Signing weight of the {ROLE_NAMES[role]} is wrong. "
                    f"Signer: {signer.key} Weight: {signer.weight}",
                )
            found[role] = signer

        for role in EXPECTED_WEIGHTS:
            if role not in found:
                raise AuditInvariantViolation(
                    AuditViolation.MISSING_SIGNER,
                    f"Missing {ROLE_NAMES[role]} as signer",
                )

        recipient = found[SignerRole.RECIPIENT].key
        secret_hash = _decode_signer_key(
            SignerRole.SECRET_HASH_COMMITMENT, found[SignerRole.SECRET_HASH_COMMITMENT].key
        )
        committed_refund_hash = _decode_signer_key(
            SignerRole.REFUND_HASH_COMMITMENT, found[SignerRole.REFUND_HASH_COMMITMENT].key
        )

        # Hash under our own network, whatever the sender used
        claimed = TransactionEnvelope(
            refund_transaction.transaction, self.config.network_passphrase
        )
        if claimed.hash() != committed_refund_hash:
            raise AuditInvariantViolation(
                AuditViolation.REFUND_HASH_MISMATCH,
                "Refund transaction hash in the signing condition is not equal "
                "to the one of the passed refund transaction",
            )

        refund_address, locktime = self._check_refund_transaction(holding_address, claimed)

        log.info(f"Audited holding account {holding_address}: recipient={recipient}, "
                 f"refund={refund_address}, locktime={locktime}")

        return AuditResult(
            contract_address=holding_address,
            balance=account.balance,
            recipient=recipient,
            refund_address=refund_address,
            secret_hash=secret_hash.hex(),
            locktime=locktime,
        )

    def _check_refund_transaction(self, holding_address: str,
                                  envelope: TransactionEnvelope):
        """Returns (refund_address, locktime) of a well formed refund."""
        tx = envelope.transaction
        if len(tx.operations) != 1:
            raise AuditInvariantViolation(
                AuditViolation.MALFORMED_REFUND_TRANSACTION,
                f"Refund transaction is expected to have 1 operation instead of {len(tx.operations)}",
            )

        operation = tx.operations[0]
        kind = OperationKind.of(operation)
        if kind is not OperationKind.ACCOUNT_MERGE:
            raise AuditInvariantViolation(
                AuditViolation.MALFORMED_REFUND_TRANSACTION,
                f"Expecting an account merge operation in the refund transaction "
                f"but got {kind.value}",
            )

        source = (operation.source or tx.source).account_id
        if source != holding_address:
            raise AuditInvariantViolation(
                AuditViolation.MALFORMED_REFUND_TRANSACTION,
                f"The refund transaction does not refund from the holding account but from {source}",
            )

        time_bounds = tx.preconditions.time_bounds if tx.preconditions else None
        locktime: Optional[int] = time_bounds.min_time if time_bounds else None
        if not locktime:
            raise AuditInvariantViolation(
                AuditViolation.MALFORMED_REFUND_TRANSACTION,
                "The refund transaction has no locktime",
            )

        return operation.destination.account_id, locktime
