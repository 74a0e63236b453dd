#!/usr/bin/env python3
"""
xlmswap command line tool.

Creates and resolves the Stellar transactions of a cross-chain atomic swap.
A second tool handles the transactions on the other chain.

Example scenarios using bitcoin as the second chain:

Scenario 1:
    cp1 initiates (btc)
    cp2 participates with cp1 H(S) (xlm)
    cp1 redeems xlm revealing S
      - must verify H(S) in contract is hash of known secret
    cp2 redeems btc with S

Scenario 2:
    cp1 initiates (xlm)
    cp2 participates with cp1 H(S) (btc)
    cp1 redeems btc revealing S
      - must verify H(S) in contract is hash of known secret
    cp2 redeems xlm with S

Usage:
    xlmswap [--testnet] [--automated] initiate <initiator seed> <participant address> <amount>
    xlmswap [--testnet] [--automated] participate <participant seed> <initiator address> <amount> <secret hash>
    xlmswap [--testnet] [--automated] redeem <receiver seed> <holding account address> <secret>
    xlmswap [--testnet] [--automated] refund <refund transaction>
    xlmswap [--testnet] [--automated] extractsecret <holding account address> <secret hash>
    xlmswap [--testnet] [--automated] auditcontract <holding account address> <refund transaction>
"""

import argparse
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from typing import Optional, List, Dict, Any

from stellar_sdk import Keypair, StrKey
from stellar_sdk.exceptions import SdkError

from .core import SECRET_SIZE
from .chains.stellar import StellarClient, StellarConfig
from .errors import SwapError, ValidationError
from .swap.executor import SwapExecutor

log = logging.getLogger(__name__)


# =============================================================================
# Argument parsing
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xlmswap",
        description="Stellar atomic swaps: create and resolve holding accounts",
    )
    parser.add_argument("--testnet", action="store_true", help="use testnet network")
    parser.add_argument(
        "--automated", action="store_true",
        help="Use automated/unattended version with json output",
    )
    parser.add_argument("--horizon-url", type=str, help="Horizon server to use")
    parser.add_argument("--timeout", type=int, help="Horizon request timeout (seconds)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log protocol steps to stderr")

    commands = parser.add_subparsers(dest="command", metavar="cmd")
    commands.required = True

    initiate = commands.add_parser("initiate", help="initiate a swap")
    initiate.add_argument("seed", help="initiator seed")
    initiate.add_argument("counterparty", help="participant address")
    initiate.add_argument("amount", help="amount of XLM to lock")

    participate = commands.add_parser("participate", help="participate in a swap")
    participate.add_argument("seed", help="participant seed")
    participate.add_argument("counterparty", help="initiator address")
    participate.add_argument("amount", help="amount of XLM to lock")
    participate.add_argument("secret_hash", help="secret hash (hex)")

    redeem = commands.add_parser("redeem", help="redeem a holding account")
    redeem.add_argument("seed", help="receiver seed")
    redeem.add_argument("holding_account", help="holding account address")
    redeem.add_argument("secret", help="secret (hex)")

    refund = commands.add_parser("refund", help="submit a refund transaction")
    refund.add_argument("refund_transaction", help="refund transaction (base64 XDR)")

    extract = commands.add_parser("extractsecret", help="extract the secret of a redeemed holding account")
    extract.add_argument("holding_account", help="holding account address")
    extract.add_argument("secret_hash", help="secret hash (hex)")

    audit = commands.add_parser("auditcontract", help="audit a holding account")
    audit.add_argument("holding_account", help="holding account address")
    audit.add_argument("refund_transaction", help="refund transaction (base64 XDR)")

    return parser


def parse_seed(value: str, role: str) -> Keypair:
    try:
        keypair = Keypair.from_secret(value)
    except (SdkError, ValueError) as e:
        raise ValidationError(f"invalid {role} seed: {e}") from e
    return keypair


def parse_address(value: str, role: str) -> str:
    if not StrKey.is_valid_ed25519_public_key(value):
        raise ValidationError(f"invalid {role} address: {value}")
    return value


def parse_amount(value: str) -> str:
    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise ValidationError(f"failed to decode amount: {value}") from e
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"amount must be positive: {value}")
    return value


def parse_hex32(value: str, what: str) -> bytes:
    try:
        decoded = bytes.fromhex(value)
    except ValueError as e:
        raise ValidationError(f"{what} must be hex encoded") from e
    if len(decoded) != SECRET_SIZE:
        raise ValidationError(
            f"{what} should be {SECRET_SIZE} bytes instead of {len(decoded)}"
        )
    return decoded


# =============================================================================
# Output
# =============================================================================

def emit(automated: bool, payload: Dict[str, Any], lines: List[str]) -> None:
    if automated:
        print(json.dumps(payload))
    else:
        print("\n".join(lines))


def format_duration(seconds: int) -> str:
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}h{minutes}m{secs}s"


# =============================================================================
# Commands
# =============================================================================

def run_command(args: argparse.Namespace, executor: SwapExecutor) -> None:
    """Validate arguments, run one command and print its result."""
    automated = args.automated

    if args.command == "initiate":
        keypair = parse_seed(args.seed, "initiator")
        counterparty = parse_address(args.counterparty, "participant")
        amount = parse_amount(args.amount)
        result = executor.initiate(keypair, counterparty, amount)
        holding = result.holding
        emit(automated, result.to_dict(), [
            f"Secret:      {result.secret.hex()}",
            f"Secret hash: {holding.secret_hash}",
            "",
            f"initiator address: {holding.funding_address}",
            f"holding account address: {holding.address}",
            f"refund transaction:\n{holding.refund_transaction_xdr}",
        ])

    elif args.command == "participate":
        keypair = parse_seed(args.seed, "participant")
        counterparty = parse_address(args.counterparty, "initiator")
        amount = parse_amount(args.amount)
        secret_hash = parse_hex32(args.secret_hash, "secret hash")
        result = executor.participate(keypair, counterparty, amount, secret_hash)
        holding = result.holding
        emit(automated, result.to_dict(), [
            f"participant address: {holding.funding_address}",
            f"holding account address: {holding.address}",
            f"refund transaction:\n{holding.refund_transaction_xdr}",
        ])

    elif args.command == "auditcontract":
        holding_address = parse_address(args.holding_account, "holding account")
        refund_tx = executor.refunder.decode(args.refund_transaction)
        audit = executor.audit(holding_address, refund_tx)
        locktime = audit.locktime_utc
        remaining = audit.locktime - int(executor.clock())
        if remaining > 0:
            reached = f"Locktime reached in {format_duration(remaining)}"
        else:
            reached = "Refund time lock has expired"
        emit(automated, audit.to_dict(), [
            f"Contract address:        {audit.contract_address}",
            f"Contract value:          {audit.balance}",
            f"Recipient address:       {audit.recipient}",
            f"Refund address:          {audit.refund_address}",
            "",
            f"Secret hash: {audit.secret_hash}",
            "",
            f"Locktime: {locktime}",
            reached,
        ])

    elif args.command == "refund":
        refund_tx = executor.refunder.decode(args.refund_transaction)
        result = executor.refund(refund_tx)
        emit(automated, {"refundTransaction": result.get("hash")}, [
            f"Refund transaction: {result.get('hash')}",
        ])

    elif args.command == "redeem":
        keypair = parse_seed(args.seed, "receiver")
        holding_address = parse_address(args.holding_account, "holding account")
        secret = parse_hex32(args.secret, "secret")
        result = executor.redeem(keypair, holding_address, secret)
        emit(automated, {"redeemTransaction": result.get("hash")}, [
            f"Redeem transaction: {result.get('hash')}",
        ])

    elif args.command == "extractsecret":
        holding_address = parse_address(args.holding_account, "holding account")
        secret_hash = parse_hex32(args.secret_hash, "secret hash").hex()
        secret = executor.extract_secret(holding_address, secret_hash)
        emit(automated, {"secret": secret.hex()}, [
            f"Extracted secret: {secret.hex()}",
        ])


def main(argv: Optional[List[str]] = None,
         client: Optional[StellarClient] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        stream=sys.stderr,
    )

    try:
        config = StellarConfig.from_env(
            testnet=args.testnet,
            horizon_url=args.horizon_url,
            timeout=args.timeout,
        )
        executor = SwapExecutor(client or StellarClient(config), config)
        run_command(args, executor)
    except ValidationError as e:
        print(e, file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1
    except (SwapError, ValueError) as e:
        print(e, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
