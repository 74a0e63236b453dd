"""
Swap Executor for xlmswap.

Runs the Stellar side of an atomic swap. The other chain is handled by a
separate tool; any chain works so long as it supports sha256 hash locks
and time locks.

Swap Flow (XLM initiated):
1. Initiator generates the secret, creates a holding account for the
   participant (48h locktime)
2. Participant audits it, locks their leg on the other chain with the same
   secret hash (24h locktime)
3. Initiator redeems the participant's leg, revealing the secret
4. Participant extracts the secret and redeems this holding account

Either party refunds with the pre-built refund transaction once its
locktime has passed.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, Dict, Any, Callable

from stellar_sdk import Keypair, TransactionEnvelope

from ..core import (
    AuditResult,
    HoldingAccount,
    LOCK_TIME,
    PARTICIPANT_LOCK_TIME,
    SECRET_SIZE,
    generate_secret,
)
from ..chains.stellar import StellarClient, StellarConfig
from ..htlc.audit import ContractAuditor
from ..htlc.holding import HoldingAccountBuilder, RefundTransactionFactory
from ..htlc.redeem import RedeemTransactionBuilder, RefundSubmitter
from .extractor import SecretExtractor

log = logging.getLogger(__name__)


@dataclass
class InitiateResult:
    """Outcome of initiating a swap."""
    secret: bytes
    holding: HoldingAccount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "secret": self.secret.hex(),
            "hash": self.holding.secret_hash,
            "initiator": self.holding.funding_address,
            "holdingaccount": self.holding.address,
            "refundtransaction": self.holding.refund_transaction_xdr,
        }


@dataclass
class ParticipateResult:
    """Outcome of participating in a swap."""
    holding: HoldingAccount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "partcipant": self.holding.funding_address,
            "holdingaccount": self.holding.address,
            "refundtransaction": self.holding.refund_transaction_xdr,
        }


class SwapExecutor:
    """
    Executes the Stellar leg of atomic swaps.
    """

    def __init__(self, client: StellarClient, config: StellarConfig,
                 clock: Optional[Callable[[], float]] = None):
        self.client = client
        self.config = config
        self.clock = clock or time.time

        self.builder = HoldingAccountBuilder(client, config)
        self.auditor = ContractAuditor(client, config)
        self.redeemer = RedeemTransactionBuilder(client, config)
        self.refunder = RefundSubmitter(client, config)
        self.extractor = SecretExtractor(client)

    def initiate(self, initiator_keypair: Keypair, participant_address: str,
                 amount: str) -> InitiateResult:
        """
        Start a swap: generate the secret and lock `amount` XLM for the participant.
        """
        secret, secret_hash = generate_secret()
        holding = self._lock(initiator_keypair, participant_address, amount,
                             secret_hash, LOCK_TIME)
        return InitiateResult(secret=secret, holding=holding)

    def participate(self, participant_keypair: Keypair, initiator_address: str,
                    amount: str, secret_hash: bytes) -> ParticipateResult:
        """
        Answer a swap: lock `amount` XLM for the initiator under their secret hash.

        The participant's locktime is half the initiator's, so the initiator,
        who reveals the secret first, keeps a longer safety margin.
        """
        holding = self._lock(participant_keypair, initiator_address, amount,
                             secret_hash, PARTICIPANT_LOCK_TIME)
        return ParticipateResult(holding=holding)

    def _lock(self, funding_keypair: Keypair, counterparty_address: str,
              amount: str, secret_hash: bytes, lock_duration: int) -> HoldingAccount:
        holding_keypair = Keypair.random()
        locktime = RefundTransactionFactory.lock_until(lock_duration, self.clock())
        log.info(f"Locking {amount} XLM in {holding_keypair.public_key} "
                 f"for {counterparty_address} until {locktime}")
        return self.builder.build(
            funding_keypair, holding_keypair, counterparty_address,
            amount, secret_hash, locktime,
        )

    def audit(self, holding_address: str,
              refund_transaction: TransactionEnvelope) -> AuditResult:
        """Audit a counterparty's holding account."""
        return self.auditor.audit(holding_address, refund_transaction)

    def redeem(self, receiver_keypair: Keypair, holding_address: str,
               secret: bytes) -> Dict[str, Any]:
        """Redeem a holding account with the secret."""
        return self.redeemer.redeem(receiver_keypair, holding_address, secret)

    def refund(self, refund_transaction: TransactionEnvelope) -> Dict[str, Any]:
        """Submit a pre-built refund transaction."""
        return self.refunder.refund(refund_transaction)

    def extract_secret(self, holding_address: str, secret_hash: str) -> bytes:
        """Recover the secret revealed by redeeming a holding account."""
        secret = self.extractor.extract(holding_address, secret_hash)
        if len(secret) != SECRET_SIZE:
            log.warning(f"Extracted secret has {len(secret)} bytes, expected {SECRET_SIZE}")
        return secret
