"""
Secret extraction for xlmswap.

Redeeming a holding account publishes the secret as a hash(x) signature
of the redeem transaction. The counterparty reads it back from the ledger
to claim the other chain's leg.
"""

import base64
import binascii
import logging
from typing import List, Optional

from ..core import MAX_SIGNATURE_SIZE, SettledTransaction, verify_preimage
from ..chains.stellar import StellarClient
from ..errors import ExtractionFailure, SecretExtractionError, ValidationError

log = logging.getLogger(__name__)


def find_preimage(signatures: List[str], secret_hash: str) -> Optional[bytes]:
    """
    Find the signature whose sha256 equals secret_hash.

    Args:
        signatures: base64 signature payloads of a settled transaction
        secret_hash: sha256 of the secret (hex)

    Returns:
        The preimage, or None
    """
    target = bytes.fromhex(secret_hash)
    for raw_signature in signatures:
        try:
            candidate = base64.b64decode(raw_signature, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SecretExtractionError(
                ExtractionFailure.PREIMAGE_NOT_FOUND,
                f"Error base64 decoding signature: {e}",
            ) from e
        if len(candidate) > MAX_SIGNATURE_SIZE:
            continue
        if verify_preimage(candidate, target):
            return candidate
    return None


class SecretExtractor:
    """
    Recovers revealed secrets from redeemed holding accounts.
    """

    def __init__(self, client: StellarClient):
        self.client = client

    def extract(self, holding_address: str, secret_hash: str) -> bytes:
        """
        Extract the secret from the transaction that spent a holding account.

        Args:
            holding_address: Redeemed holding account
            secret_hash: sha256 of the secret (hex)

        Returns:
            The 32-byte secret

        Raises:
            SecretExtractionError: not redeemed yet, spent more than once,
                or no signature matches the hash
        """
        try:
            bytes.fromhex(secret_hash)
        except ValueError as e:
            raise ValidationError("secret hash must be hex encoded") from e

        transactions = self.client.get_debiting_transactions(holding_address)
        spend = self._single_spend(transactions)

        secret = find_preimage(spend.signatures, secret_hash)
        if secret is None:
            raise SecretExtractionError(
                ExtractionFailure.PREIMAGE_NOT_FOUND,
                "Unable to find the matching secret",
            )

        log.info(f"Extracted secret from {holding_address} (tx={spend.hash})")
        return secret

    @staticmethod
    def _single_spend(transactions: List[SettledTransaction]) -> SettledTransaction:
        if not transactions:
            raise SecretExtractionError(
                ExtractionFailure.NOT_YET_REDEEMED,
                "The holding account has not been redeemed yet",
            )
        if len(transactions) > 1:
            # No attempt to pick the redeeming one
            raise SecretExtractionError(
                ExtractionFailure.AMBIGUOUS_SPEND,
                f"Multiple spending transactions found: {len(transactions)}",
            )
        return transactions[0]
