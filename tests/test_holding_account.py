#!/usr/bin/env python3
"""
Holding account construction tests.

Covers:
1. Signer algebra of a freshly built holding account
2. Atomic configuration (one transaction, four operations)
3. Refund transaction shape (merge, sequence reservation, time bounds)
4. Locktime policy (participant gets half of the initiator's)
5. Failure surfacing (missing funding account, rejected submission)

Usage:
    python -m pytest tests/test_holding_account.py
"""

import sys
import os
import hashlib
import unittest

# Add package and test helpers to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, os.path.dirname(__file__))

from stellar_sdk import Keypair, StrKey
from stellar_sdk.operation import AccountMerge, SetOptions

from xlmswap.core import (
    LOCK_TIME, PARTICIPANT_LOCK_TIME, HOLDING_THRESHOLD,
    RECIPIENT_WEIGHT, SECRET_HASH_WEIGHT, REFUND_HASH_WEIGHT,
)
from xlmswap.chains.stellar import StellarConfig
from xlmswap.errors import FetchError, SubmissionError, ValidationError
from xlmswap.htlc.holding import HoldingAccountBuilder, RefundTransactionFactory
from xlmswap.swap.executor import SwapExecutor

from fake_ledger import FakeLedger


class HoldingAccountTestCase(unittest.TestCase):
    """Funded initiator and participant on an in-memory testnet."""

    def setUp(self):
        self.config = StellarConfig(network="testnet")
        self.ledger = FakeLedger(self.config.network_passphrase)
        self.funder = Keypair.random()
        self.counterparty = Keypair.random()
        self.ledger.fund(self.funder.public_key, "1000")
        self.ledger.fund(self.counterparty.public_key, "100")
        self.builder = HoldingAccountBuilder(self.ledger, self.config)
        self.secret = os.urandom(32)
        self.secret_hash = hashlib.sha256(self.secret).digest()

    def build(self, amount="10", locktime=None):
        locktime = locktime or int(self.ledger.now) + LOCK_TIME
        return self.builder.build(
            self.funder, Keypair.random(), self.counterparty.public_key,
            amount, self.secret_hash, locktime,
        )


class TestSignerAlgebra(HoldingAccountTestCase):

    def test_signer_weights(self):
        """recipient + secret == threshold == refund, master == 0."""
        holding = self.build()
        account = self.ledger.get_account(holding.address)

        weights = {s.type: s.weight for s in account.signers if s.key != holding.address}
        master = [s for s in account.signers if s.key == holding.address]

        self.assertEqual(weights["ed25519_public_key"], RECIPIENT_WEIGHT)
        self.assertEqual(weights["sha256_hash"], SECRET_HASH_WEIGHT)
        self.assertEqual(weights["preauth_tx"], REFUND_HASH_WEIGHT)
        self.assertEqual(RECIPIENT_WEIGHT + SECRET_HASH_WEIGHT, HOLDING_THRESHOLD)
        self.assertEqual(REFUND_HASH_WEIGHT, HOLDING_THRESHOLD)
        self.assertEqual(master[0].weight, 0)

        thresholds = account.thresholds
        self.assertEqual((thresholds.low, thresholds.medium, thresholds.high), (2, 2, 2))

    def test_signer_values(self):
        """Signers commit to the counterparty, the secret hash and the refund hash."""
        holding = self.build()
        account = self.ledger.get_account(holding.address)
        keys = {s.type: s.key for s in account.signers if s.key != holding.address}

        self.assertEqual(keys["ed25519_public_key"], self.counterparty.public_key)
        self.assertEqual(StrKey.decode_sha256_hash(keys["sha256_hash"]), self.secret_hash)
        self.assertEqual(
            StrKey.decode_pre_auth_tx(keys["preauth_tx"]).hex(),
            holding.refund_transaction_hash,
        )

    def test_balance_moved(self):
        """Holding account holds the amount, funder is debited."""
        holding = self.build(amount="10")
        self.assertEqual(self.ledger.balance(holding.address), 10)
        self.assertEqual(self.ledger.balance(self.funder.public_key), 990)

    def test_configuration_is_atomic(self):
        """Signers and thresholds are installed by one 4-operation transaction."""
        holding = self.build()
        configure = self.ledger.submitted[-1].transaction

        self.assertEqual(configure.source.account_id, holding.address)
        self.assertEqual(len(configure.operations), 4)
        for op in configure.operations:
            self.assertIsInstance(op, SetOptions)
        last = configure.operations[3]
        self.assertEqual(last.master_weight, 0)
        self.assertEqual(
            (last.low_threshold, last.med_threshold, last.high_threshold), (2, 2, 2)
        )

    def test_unspent_holding_not_debited(self):
        """Creation and configuration leave no debit on the holding account."""
        holding = self.build()
        self.assertEqual(self.ledger.get_debiting_transactions(holding.address), [])
        self.assertEqual(len(self.ledger.get_debiting_transactions(self.funder.public_key)), 1)

    def test_holding_key_powerless(self):
        """After configuration the holding key alone cannot move funds."""
        holding_keypair = Keypair.random()
        holding = self.builder.build(
            self.funder, holding_keypair, self.counterparty.public_key,
            "10", self.secret_hash, int(self.ledger.now) + LOCK_TIME,
        )
        from stellar_sdk import Account, TransactionBuilder
        account = self.ledger.get_account(holding.address)
        steal = (
            TransactionBuilder(Account(holding.address, account.sequence),
                               self.config.network_passphrase)
            .append_account_merge_op(self.funder.public_key)
            .add_time_bounds(0, 0)
            .build()
        )
        steal.sign(holding_keypair)
        with self.assertRaises(SubmissionError) as ctx:
            self.ledger.submit_transaction(steal)
        self.assertEqual(ctx.exception.result_codes["transaction"], "tx_bad_auth")


class TestRefundTransaction(HoldingAccountTestCase):

    def test_refund_shape(self):
        """Merge back to the funder, lower bound = locktime, no upper bound."""
        locktime = int(self.ledger.now) + LOCK_TIME
        holding = self.build(locktime=locktime)
        tx = holding.refund_transaction.transaction

        self.assertEqual(len(tx.operations), 1)
        op = tx.operations[0]
        self.assertIsInstance(op, AccountMerge)
        self.assertEqual(op.destination.account_id, self.funder.public_key)
        self.assertEqual(op.source.account_id, holding.address)
        self.assertEqual(tx.preconditions.time_bounds.min_time, locktime)
        self.assertEqual(tx.preconditions.time_bounds.max_time, 0)
        self.assertEqual(holding.refund_transaction.signatures, [])

    def test_refund_follows_configuration(self):
        """Refund consumes the sequence right after the configuration transaction."""
        holding = self.build()
        account = self.ledger.get_account(holding.address)
        self.assertEqual(holding.refund_transaction.transaction.sequence, account.sequence + 1)

    def test_refund_hash(self):
        """Returned hash is the network-bound hash of the refund transaction."""
        holding = self.build()
        self.assertEqual(holding.refund_transaction.hash_hex(), holding.refund_transaction_hash)

    def test_factory_sequence(self):
        """Factory binds to sequence + 1."""
        factory = RefundTransactionFactory(self.config)
        holding = Keypair.random().public_key
        envelope = factory.build(holding, self.funder.public_key, 1_800_000_000, 41)
        self.assertEqual(envelope.transaction.sequence, 42)

    def test_lock_until(self):
        self.assertEqual(RefundTransactionFactory.lock_until(3600, now=1000.7), 4600)


class TestLocktimePolicy(unittest.TestCase):

    def test_participant_half(self):
        """Initiator locks 48h, participant half of that."""
        self.assertEqual(LOCK_TIME, 48 * 3600)
        self.assertEqual(PARTICIPANT_LOCK_TIME * 2, LOCK_TIME)
        self.assertLess(PARTICIPANT_LOCK_TIME, LOCK_TIME)

    def test_executor_locktimes(self):
        """initiate and participate apply their lock durations."""
        config = StellarConfig(network="testnet")
        ledger = FakeLedger(config.network_passphrase)
        initiator, participant = Keypair.random(), Keypair.random()
        ledger.fund(initiator.public_key)
        ledger.fund(participant.public_key)
        executor = SwapExecutor(ledger, config, clock=lambda: ledger.now)

        initiated = executor.initiate(initiator, participant.public_key, "10")
        participated = executor.participate(
            participant, initiator.public_key, "5",
            bytes.fromhex(initiated.holding.secret_hash),
        )

        self.assertEqual(initiated.holding.locktime, int(ledger.now) + LOCK_TIME)
        self.assertEqual(participated.holding.locktime, int(ledger.now) + PARTICIPANT_LOCK_TIME)
        self.assertEqual(
            hashlib.sha256(initiated.secret).hexdigest(), participated.holding.secret_hash
        )


class TestBuildFailures(HoldingAccountTestCase):

    def test_missing_funding_account(self):
        """Unknown funding account -> FetchError, nothing submitted."""
        unfunded = Keypair.random()
        with self.assertRaises(FetchError):
            self.builder.build(unfunded, Keypair.random(), self.counterparty.public_key,
                               "10", self.secret_hash, 1_800_000_000)
        self.assertEqual(self.ledger.submitted, [])

    def test_underfunded(self):
        """Rejected funding -> SubmissionError with result codes."""
        with self.assertRaises(SubmissionError) as ctx:
            self.build(amount="5000")
        self.assertEqual(ctx.exception.result_codes["operations"], ["op_underfunded"])

    def test_bad_secret_hash(self):
        with self.assertRaises(ValidationError):
            self.builder.build(self.funder, Keypair.random(), self.counterparty.public_key,
                               "10", b"short", 1_800_000_000)

    def test_address_only_keypair(self):
        with self.assertRaises(ValidationError):
            self.builder.build(Keypair.from_public_key(self.funder.public_key),
                               Keypair.random(), self.counterparty.public_key,
                               "10", self.secret_hash, 1_800_000_000)


if __name__ == "__main__":
    unittest.main()
