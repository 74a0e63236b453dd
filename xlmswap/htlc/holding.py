"""
Stellar holding account (escrow) construction for xlmswap.

Stellar has no script language, so the HTLC is expressed with the signers
and thresholds of a dedicated holding account:

    Signer                          Weight
    recipient (ed25519)             1
    sha256(secret) (hash(x))        1
    refund tx hash (pre-auth tx)    2
    master key                      0

    thresholds low/medium/high      2

To claim (redeem):
    recipient signature + secret      -> weight 2

To refund (after locktime):
    submit the pre-authorized refund  -> weight 2
"""

import logging
import time
from typing import Optional

from stellar_sdk import Account, Keypair, TransactionBuilder, TransactionEnvelope
from stellar_sdk.exceptions import SdkError

from ..core import (
    HoldingAccount,
    HOLDING_THRESHOLD,
    MASTER_WEIGHT,
    RECIPIENT_WEIGHT,
    REFUND_HASH_WEIGHT,
    SECRET_HASH_WEIGHT,
    SECRET_SIZE,
)
from ..chains.stellar import StellarClient, StellarConfig
from ..errors import FetchError, TransactionBuildError, ValidationError

log = logging.getLogger(__name__)


class RefundTransactionFactory:
    """
    Builds the time-locked refund transaction of a holding account.

    The transaction is never submitted at configuration time; only its hash
    is installed as a pre-authorized signer.
    """

    def __init__(self, config: StellarConfig):
        self.config = config

    def build(self, holding_address: str, refund_address: str,
              locktime: int, sequence: int) -> TransactionEnvelope:
        """
        Build the refund transaction.

        Args:
            holding_address: Holding account to merge
            refund_address: Account receiving the merged balance
            locktime: Lower time bound (unix timestamp), no upper bound
            sequence: Holding account sequence the refund follows; the
                refund consumes sequence + 1

        Returns:
            Unsigned TransactionEnvelope
        """
        source = Account(holding_address, sequence)
        try:
            envelope = (
                TransactionBuilder(
                    source_account=source,
                    network_passphrase=self.config.network_passphrase,
                    base_fee=self.config.base_fee,
                )
                .append_account_merge_op(destination=refund_address, source=holding_address)
                .add_time_bounds(locktime, 0)
                .build()
            )
        except (SdkError, ValueError) as e:
            raise TransactionBuildError(f"Failed to build the refund transaction: {e}") from e

        log.info(f"Refund transaction for {holding_address}: seq={sequence + 1}, "
                 f"locktime={locktime}, hash={envelope.hash_hex()}")
        return envelope

    @staticmethod
    def lock_until(lock_duration: int, now: Optional[float] = None) -> int:
        """Locktime `lock_duration` seconds from now."""
        now = time.time() if now is None else now
        return int(now) + lock_duration


class HoldingAccountBuilder:
    """
    Creates and configures atomic swap holding accounts.
    """

    def __init__(self, client: StellarClient, config: StellarConfig):
        self.client = client
        self.config = config
        self.refunds = RefundTransactionFactory(config)

    def build(self, funding_keypair: Keypair, holding_keypair: Keypair,
              counterparty_address: str, amount: str,
              secret_hash: bytes, locktime: int) -> HoldingAccount:
        """
        Create a holding account with the atomic swap signer configuration.

        Args:
            funding_keypair: Funds the holding account, receives the refund
            holding_keypair: Freshly generated keypair of the holding account
            counterparty_address: Recipient allowed to redeem with the secret
            amount: Starting balance in XLM
            secret_hash: sha256 of the secret (32 bytes)
            locktime: Earliest refund time (unix timestamp)

        Returns:
            HoldingAccount with the refund transaction to hand to the counterparty
        """
        if len(secret_hash) != SECRET_SIZE:
            raise ValidationError(f"secret hash must be {SECRET_SIZE} bytes, got {len(secret_hash)}")
        if not funding_keypair.can_sign() or not holding_keypair.can_sign():
            raise ValidationError("funding and holding keypairs must hold a secret seed")

        holding_address = holding_keypair.public_key
        funding_address = funding_keypair.public_key

        self._create_holding_account(funding_keypair, holding_address, amount)

        holding = self._get(holding_address, "holding account")
        configure_sequence = holding.sequence + 1
        refund = self.refunds.build(
            holding_address, funding_address, locktime, configure_sequence
        )
        refund_hash = refund.hash()

        self._set_signing_options(
            holding_keypair, holding.sequence, counterparty_address,
            secret_hash, refund_hash,
        )

        log.info(f"Holding account {holding_address} configured: "
                 f"recipient={counterparty_address}, amount={amount}")

        return HoldingAccount(
            address=holding_address,
            funding_address=funding_address,
            recipient=counterparty_address,
            amount=amount,
            secret_hash=secret_hash.hex(),
            locktime=locktime,
            refund_transaction=refund,
            refund_transaction_hash=refund_hash.hex(),
        )

    def _get(self, address: str, what: str):
        try:
            return self.client.get_account(address)
        except FetchError as e:
            raise FetchError(f"Failed to get the {what}: {e}") from e

    def _create_holding_account(self, funding_keypair: Keypair,
                                holding_address: str, amount: str) -> None:
        """Fund and create the holding account."""
        funding = self._get(funding_keypair.public_key, "funding account")

        try:
            envelope = (
                TransactionBuilder(
                    source_account=Account(funding.address, funding.sequence),
                    network_passphrase=self.config.network_passphrase,
                    base_fee=self.config.base_fee,
                )
                .append_create_account_op(
                    destination=holding_address,
                    starting_balance=amount,
                    source=funding.address,
                )
                .add_time_bounds(0, 0)
                .build()
            )
            envelope.sign(funding_keypair)
        except (SdkError, ValueError) as e:
            raise TransactionBuildError(f"Failed to create the holding account transaction: {e}") from e

        log.info(f"Creating holding account {holding_address} with {amount} XLM")
        self.client.submit_transaction(envelope)

    def _set_signing_options(self, holding_keypair: Keypair, sequence: int,
                             counterparty_address: str, secret_hash: bytes,
                             refund_hash: bytes) -> None:
        """
        Install the swap signers and disable the master key.

        All four operations go in one transaction so the account is never
        observable half configured.
        """
        holding_address = holding_keypair.public_key
        try:
            envelope = (
                TransactionBuilder(
                    source_account=Account(holding_address, sequence),
                    network_passphrase=self.config.network_passphrase,
                    base_fee=self.config.base_fee,
                )
                .append_ed25519_public_key_signer(
                    counterparty_address, RECIPIENT_WEIGHT, source=holding_address
                )
                .append_hashx_signer(secret_hash, SECRET_HASH_WEIGHT, source=holding_address)
                .append_pre_auth_tx_signer(refund_hash, REFUND_HASH_WEIGHT, source=holding_address)
                .append_set_options_op(
                    master_weight=MASTER_WEIGHT,
                    low_threshold=HOLDING_THRESHOLD,
                    med_threshold=HOLDING_THRESHOLD,
                    high_threshold=HOLDING_THRESHOLD,
                    source=holding_address,
                )
                .add_time_bounds(0, 0)
                .build()
            )
            envelope.sign(holding_keypair)
        except (SdkError, ValueError) as e:
            raise TransactionBuildError(f"Failed to create the signing options transaction: {e}") from e

        log.info(f"Configuring signers of {holding_address}")
        self.client.submit_transaction(envelope)
