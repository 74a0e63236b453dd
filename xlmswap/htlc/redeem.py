"""
Holding account resolution for xlmswap.

A holding account ends in exactly one of two ways:
- redeem: the recipient merges it, authorized by the secret and their key
- refund: anyone submits the pre-authorized refund after its locktime
"""

import binascii
import logging
import struct
from typing import Dict, Any

from stellar_sdk import Account, Keypair, TransactionBuilder, TransactionEnvelope
from stellar_sdk.exceptions import SdkError

from ..core import SECRET_SIZE
from ..chains.stellar import StellarClient, StellarConfig
from ..errors import TransactionBuildError, ValidationError

log = logging.getLogger(__name__)


class RedeemTransactionBuilder:
    """
    Builds, authorizes and submits redeem transactions.
    """

    def __init__(self, client: StellarClient, config: StellarConfig):
        self.client = client
        self.config = config

    def build(self, receiver_keypair: Keypair, holding_address: str,
              secret: bytes) -> TransactionEnvelope:
        """
        Build the redeem transaction with both authorizations attached.

        Args:
            receiver_keypair: Recipient signer of the holding account
            holding_address: Holding account to merge
            secret: Preimage of the holding account's secret hash

        Returns:
            Signed TransactionEnvelope (hash(x) + ed25519 signatures)
        """
        if len(secret) != SECRET_SIZE:
            raise ValidationError(f"The secret should be {SECRET_SIZE} bytes instead of {len(secret)}")
        if not receiver_keypair.can_sign():
            raise ValidationError("receiver keypair must hold a secret seed")

        holding = self.client.get_account(holding_address)
        receiver_address = receiver_keypair.public_key

        try:
            envelope = (
                TransactionBuilder(
                    source_account=Account(holding.address, holding.sequence),
                    network_passphrase=self.config.network_passphrase,
                    base_fee=self.config.base_fee,
                )
                .append_account_merge_op(destination=receiver_address, source=holding.address)
                .add_time_bounds(0, 0)
                .build()
            )
        except (SdkError, ValueError) as e:
            raise TransactionBuildError(f"Unable to build the transaction: {e}") from e

        try:
            envelope.sign_hashx(secret)
        except (SdkError, ValueError) as e:
            raise TransactionBuildError(f"Unable to sign with the secret: {e}") from e
        try:
            envelope.sign(receiver_keypair)
        except (SdkError, ValueError) as e:
            raise TransactionBuildError(f"Unable to sign with the receiver keypair: {e}") from e

        return envelope

    def redeem(self, receiver_keypair: Keypair, holding_address: str,
               secret: bytes) -> Dict[str, Any]:
        """
        Redeem a holding account, revealing the secret on-chain.

        Returns:
            Horizon transaction record
        """
        envelope = self.build(receiver_keypair, holding_address, secret)
        log.info(f"Redeeming {holding_address} to {receiver_keypair.public_key}")
        result = self.client.submit_transaction(envelope)
        log.info(f"Redeemed {holding_address}: tx={result.get('hash')}")
        return result


class RefundSubmitter:
    """
    Resubmits pre-built refund transactions verbatim.
    """

    def __init__(self, client: StellarClient, config: StellarConfig):
        self.client = client
        self.config = config

    def decode(self, refund_xdr: str) -> TransactionEnvelope:
        """Decode a base64 refund transaction envelope for this network."""
        try:
            return TransactionEnvelope.from_xdr(refund_xdr, self.config.network_passphrase)
        except (SdkError, ValueError, binascii.Error, struct.error, EOFError) as e:
            raise ValidationError(f"failed to decode refund transaction: {e}") from e

    def refund(self, refund_transaction: TransactionEnvelope) -> Dict[str, Any]:
        """
        Submit the refund transaction.

        No signature is added: the holding account's pre-authorized
        transaction signer authorizes it once its locktime has passed.

        Returns:
            Horizon transaction record
        """
        log.info(f"Submitting refund transaction {refund_transaction.hash_hex()}")
        result = self.client.submit_transaction(refund_transaction)
        log.info(f"Refunded: tx={result.get('hash')}")
        return result
