#!/usr/bin/env python3
"""
Example: XLM <-> XLM Atomic Swap on testnet

Both legs live on the Stellar testnet so the whole flow can be run with
one tool:

1. Alice and Bob get funded by friendbot
2. Alice initiates (48h locktime), keeps the secret
3. Bob audits Alice's holding account, participates with the same hash (24h)
4. Alice audits Bob's holding account and redeems it, revealing the secret
5. Bob extracts the secret and redeems Alice's holding account

Usage:
    python testnet_swap.py
"""

import sys
import logging
from pathlib import Path

import httpx
from stellar_sdk import Keypair

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from xlmswap.chains.stellar import StellarClient, StellarConfig
from xlmswap.swap.executor import SwapExecutor

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s'
)
log = logging.getLogger(__name__)

FRIENDBOT_URL = "https://friendbot.stellar.org"


def fund(address: str) -> None:
    response = httpx.get(FRIENDBOT_URL, params={"addr": address}, timeout=30.0)
    response.raise_for_status()
    log.info(f"Funded {address}")


def main():
    # =================================================================
    # 1. Initialize client and accounts
    # =================================================================
    config = StellarConfig.from_env(testnet=True)
    executor = SwapExecutor(StellarClient(config), config)

    alice, bob = Keypair.random(), Keypair.random()
    fund(alice.public_key)
    fund(bob.public_key)

    # =================================================================
    # 2. Alice initiates
    # =================================================================
    initiated = executor.initiate(alice, bob.public_key, "100")
    alice_holding = initiated.holding
    log.info(f"Alice holding account: {alice_holding.address}")
    log.info(f"Secret hash: {alice_holding.secret_hash}")

    # =================================================================
    # 3. Bob audits and participates
    # =================================================================
    audit = executor.audit(alice_holding.address, alice_holding.refund_transaction)
    log.info(f"Bob audited {audit.balance} XLM, refundable after {audit.locktime_utc}")

    participated = executor.participate(
        bob, alice.public_key, "50", bytes.fromhex(audit.secret_hash)
    )
    bob_holding = participated.holding
    log.info(f"Bob holding account: {bob_holding.address}")

    # =================================================================
    # 4. Alice audits and redeems Bob's leg
    # =================================================================
    executor.audit(bob_holding.address, bob_holding.refund_transaction)
    redeemed = executor.redeem(alice, bob_holding.address, initiated.secret)
    log.info(f"Alice redeemed: {redeemed['hash']}")

    # =================================================================
    # 5. Bob extracts the secret and redeems Alice's leg
    # =================================================================
    secret = executor.extract_secret(bob_holding.address, bob_holding.secret_hash)
    redeemed = executor.redeem(bob, alice_holding.address, secret)
    log.info(f"Bob redeemed: {redeemed['hash']}")

    log.info("")
    log.info("✓ Swap complete")


if __name__ == "__main__":
    main()
