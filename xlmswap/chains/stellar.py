"""
Stellar Horizon client for xlmswap.

Thin wrapper around stellar_sdk.Server exposing the three ledger
capabilities the swap protocol needs:
- account lookup (sequence, balance, signers, thresholds)
- transaction submission
- transactions that debited an account
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Dict, Any, List

from stellar_sdk import Network, Server, TransactionEnvelope
from stellar_sdk.client.requests_client import RequestsClient
from stellar_sdk.exceptions import (
    BaseHorizonError,
    NotFoundError,
    SdkError,
)

from ..core import AccountInfo, SettledTransaction, SignerEntry, Thresholds
from ..errors import FetchError, SubmissionError, result_codes_of

log = logging.getLogger(__name__)


# Horizon endpoints
HORIZON_URLS = {
    "public": "https://horizon.stellar.org",
    "testnet": "https://horizon-testnet.stellar.org",
}

NETWORK_PASSPHRASES = {
    "public": Network.PUBLIC_NETWORK_PASSPHRASE,
    "testnet": Network.TESTNET_NETWORK_PASSPHRASE,
}

# Effects page scanned when looking for debits of a holding account
EFFECTS_PAGE_SIZE = 100

EFFECT_ACCOUNT_DEBITED = "account_debited"


@dataclass
class StellarConfig:
    """Stellar network configuration."""
    network: str = "public"         # public, testnet
    horizon_url: str = ""           # Empty = default for network
    network_passphrase: str = ""    # Empty = default for network
    base_fee: int = 100             # stroops per operation
    timeout: int = 20               # seconds per Horizon request

    def __post_init__(self):
        if self.network not in NETWORK_PASSPHRASES:
            raise ValueError(f"Unknown stellar network: {self.network}")
        self.horizon_url = self.horizon_url or HORIZON_URLS[self.network]
        self.network_passphrase = self.network_passphrase or NETWORK_PASSPHRASES[self.network]

    @classmethod
    def from_env(cls, testnet: bool = False, **overrides) -> "StellarConfig":
        """
        Build a config for the chosen network.

        STELLAR_HORIZON_URL and STELLAR_TIMEOUT override the defaults;
        explicit keyword overrides win over the environment.
        """
        values: Dict[str, Any] = {"network": "testnet" if testnet else "public"}
        if os.environ.get("STELLAR_HORIZON_URL"):
            values["horizon_url"] = os.environ["STELLAR_HORIZON_URL"]
        if os.environ.get("STELLAR_TIMEOUT"):
            values["timeout"] = int(os.environ["STELLAR_TIMEOUT"])
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _native_balance(balances: List[Dict[str, Any]]) -> str:
    for balance in balances:
        if balance.get("asset_type") == "native":
            return balance.get("balance", "0")
    return "0"


def _id_from_link(href: str) -> str:
    """Last path component of a Horizon link."""
    return href.rstrip("/").split("/")[-1]


def parse_account(record: Dict[str, Any]) -> AccountInfo:
    """Convert a Horizon account record into an AccountInfo."""
    thresholds = record.get("thresholds", {})
    return AccountInfo(
        address=record["account_id"],
        sequence=int(record["sequence"]),
        balance=_native_balance(record.get("balances", [])),
        signers=[
            SignerEntry(type=s["type"], key=s["key"], weight=int(s["weight"]))
            for s in record.get("signers", [])
        ],
        thresholds=Thresholds(
            low=int(thresholds.get("low_threshold", 0)),
            medium=int(thresholds.get("med_threshold", 0)),
            high=int(thresholds.get("high_threshold", 0)),
        ),
    )


class StellarClient:
    """
    Horizon client.

    One blocking request per call with the configured timeout; requests are
    never retried.
    """

    def __init__(self, config: StellarConfig, server: Optional[Server] = None):
        self.config = config
        self.server = server or Server(
            horizon_url=config.horizon_url,
            client=RequestsClient(
                num_retries=0,
                request_timeout=config.timeout,
                post_timeout=config.timeout,
            ),
        )

    # =========================================================================
    # Accounts
    # =========================================================================

    def get_account(self, address: str) -> AccountInfo:
        """
        Fetch an account.

        Raises:
            FetchError: unknown account or Horizon unreachable
        """
        try:
            record = self.server.accounts().account_id(address).call()
        except NotFoundError as e:
            raise FetchError(f"Account {address} does not exist") from e
        except SdkError as e:
            log.error(f"Horizon account lookup failed: {address} -> {e}")
            raise FetchError(f"Failed to get account {address}: {e}") from e
        return parse_account(record)

    # =========================================================================
    # Transactions
    # =========================================================================

    def submit_transaction(self, envelope: TransactionEnvelope) -> Dict[str, Any]:
        """
        Submit a signed transaction envelope.

        Returns:
            Horizon transaction record ({"hash": ..., "successful": ...})

        Raises:
            SubmissionError: rejected by the ledger, with its result codes
        """
        try:
            return self.server.submit_transaction(
                envelope, skip_memo_required_check=True
            )
        except BaseHorizonError as e:
            log.error(f"Transaction rejected: {e.detail} extras={e.extras}")
            raise SubmissionError(
                e.detail or e.title or str(e),
                result_codes=result_codes_of(e.extras),
                extras=e.extras,
            ) from e
        except SdkError as e:
            log.error(f"Transaction submission failed: {e}")
            raise SubmissionError(str(e)) from e

    def get_debiting_transactions(self, address: str) -> List[SettledTransaction]:
        """
        Transactions that debited an account.

        Scans one page of the account's effects for account_debited effects
        and resolves each to its transaction.
        """
        try:
            effects = (
                self.server.effects()
                .for_account(address)
                .limit(EFFECTS_PAGE_SIZE)
                .call()
            )
        except SdkError as e:
            raise FetchError(f"Failed to get the effects of {address}: {e}") from e

        transactions = []
        for effect in effects["_embedded"]["records"]:
            if effect.get("type") != EFFECT_ACCOUNT_DEBITED:
                continue
            operation_id = _id_from_link(effect["_links"]["operation"]["href"])
            try:
                operation = self.server.operations().operation(operation_id).call()
            except SdkError as e:
                raise FetchError(f"Failed to get the operation with ID {operation_id}") from e

            tx_hash = operation["transaction_hash"]
            try:
                record = self.server.transactions().transaction(tx_hash).call()
            except SdkError as e:
                raise FetchError(f"Failed to get the transaction with hash {tx_hash}") from e

            transactions.append(SettledTransaction(
                hash=record["hash"],
                signatures=list(record.get("signatures", [])),
                ledger=record.get("ledger"),
            ))

        log.info(f"{len(transactions)} debiting transaction(s) for {address}")
        return transactions
