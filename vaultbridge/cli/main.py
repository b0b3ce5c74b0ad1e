"""CLI entrypoint for planning and executing vault settlements."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import List, Optional, Union

from dotenv import load_dotenv
from eth_account import Account
from eth_account.signers.local import LocalAccount

from vaultbridge.config import ASSET, SHARE, SettlementConfig, load_config
from vaultbridge.core.codec import decode_compose
from vaultbridge.core.context import AttemptContext, TransferRequest
from vaultbridge.core.direct import DirectConversion, DirectOutcome, is_direct_conversion
from vaultbridge.core.route import Conversion
from vaultbridge.core.scan import fetch_message_status, scan_url
from vaultbridge.core.settlement import SettlementAttempt, SettlementOutcome, connect
from vaultbridge.core.utils import get_logger, hex_to_bytes
from vaultbridge.errors import SettlementError

LOGGER = get_logger("vaultbridge.cli")

load_dotenv()


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Move vault assets or shares across chains via the hub")
    parser.add_argument("--src", required=True, help="Source location key")
    parser.add_argument("--dst", required=True, help="Destination location key")
    parser.add_argument(
        "--conversion",
        choices=[item.value for item in Conversion],
        default=Conversion.NONE.value,
        help="Conversion performed on the hub",
    )
    parser.add_argument(
        "--asset",
        dest="moved",
        choices=[ASSET, SHARE],
        default=ASSET,
        help="What is moved when no conversion is requested",
    )
    parser.add_argument("--amount", required=True, help="Amount in human units, e.g. 1.5")
    parser.add_argument("--recipient", help="Final recipient (defaults to the signer)")
    parser.add_argument("--min-amount", help="Minimum final delivery in human units")
    parser.add_argument("--slippage-bps", type=int, help="Slippage tolerance in basis points")
    parser.add_argument("--compose-gas", type=int, help="Gas budget for hub-side execution")
    parser.add_argument("--compose-value", type=int, help="Native value in wei forwarded to the hub executor")
    parser.add_argument("--refund-address", help="Address refunded for excess fees (defaults to the signer)")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.json")
    parser.add_argument("--track", action="store_true", help="Query LayerZero Scan after confirmation")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--dry-run", action="store_true", help="Plan and quote without sending")
    group.add_argument("--send", action="store_true", help="Approve if needed and send the settlement")
    return parser.parse_args(argv)


def _parse_decode_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="vaultbridge decode-compose", description="Decode a compose payload")
    parser.add_argument("payload", help="Hex-encoded compose payload")
    return parser.parse_args(argv)


def decode_compose_command(payload_hex: str) -> None:
    hop, msg_value = decode_compose(hex_to_bytes(payload_hex))
    if hop is None:
        print("Empty compose payload (no further hop)")
        return
    print(f"dstEid: {hop.dst_eid}")
    print(f"to: {hop.recipient}")
    print(f"amountLD: {hop.amount}")
    print(f"minAmountLD: {hop.min_amount}")
    print(f"extraOptions: 0x{hop.extra_options.hex()}")
    print(f"composeMsg: 0x{hop.compose_msg.hex()}")
    print(f"oftCmd: 0x{hop.oft_cmd.hex()}")
    print(f"msgValue: {msg_value}")


def build_request(args: argparse.Namespace, sender: str) -> TransferRequest:
    return TransferRequest(
        source=args.src,
        destination=args.dst,
        amount=args.amount,
        recipient=args.recipient or sender,
        conversion=Conversion(args.conversion),
        moved=args.moved,
        min_amount=args.min_amount,
        slippage_bps=args.slippage_bps,
        compose_gas=args.compose_gas,
        compose_value=args.compose_value,
        refund_address=args.refund_address,
    )


async def run_settlement(
    ctx: AttemptContext, account: LocalAccount, *, dry_run: bool
) -> Union[SettlementOutcome, DirectOutcome]:
    if is_direct_conversion(ctx):
        hub_web3 = await connect(ctx.hub)
        LOGGER.info("Connected to hub %s as %s", ctx.hub.name, account.address)
        return await DirectConversion(ctx, account=account, hub_web3=hub_web3).execute(dry_run=dry_run)

    source_web3 = await connect(ctx.source)
    hub_web3 = source_web3 if ctx.source.same_as(ctx.hub) else await connect(ctx.hub)
    LOGGER.info("Connected to %s and hub %s as %s", ctx.source.name, ctx.hub.name, account.address)

    attempt = SettlementAttempt(ctx, account=account, source_web3=source_web3, hub_web3=hub_web3)
    return await attempt.execute(dry_run=dry_run)


def _report(outcome: Union[SettlementOutcome, DirectOutcome], config: SettlementConfig, *, track: bool) -> None:
    if outcome.submission is None:
        print("\n✅ Dry run complete; nothing was sent")
        return

    tx_hash = outcome.submission.tx_hash
    if isinstance(outcome, DirectOutcome):
        print(f"\n✅ Vault conversion confirmed: {tx_hash}")
        return
    print(f"\n✅ Settlement confirmed: {tx_hash}")
    print(f"LayerZero Scan: {scan_url(tx_hash, config.api_urls.layerzero_scan_ui)}")
    if track:
        try:
            messages = fetch_message_status(tx_hash, config)
        except (ConnectionError, ValueError) as exc:
            LOGGER.warning("Could not track message on LayerZero Scan: %s", exc)
            return
        if not messages:
            print("Message not indexed yet; check the link above later")
        for message in messages:
            print(f"Message {message.guid}: {message.status}")


def main(argv: Optional[List[str]] = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if argv and argv[0] == "decode-compose":
        decode_args = _parse_decode_args(argv[1:])
        try:
            decode_compose_command(decode_args.payload)
        except ValueError as exc:
            print(f"❌ Error: {exc}")
            sys.exit(1)
        return

    args = _parse_args(argv)

    private_key = (os.getenv("PRIVATE_KEY") or "").strip()
    if not private_key:
        print("❌ Error: PRIVATE_KEY environment variable not set")
        sys.exit(1)

    try:
        config = load_config(args.config)
        account: LocalAccount = Account.from_key(private_key)
        ctx = AttemptContext.create(config, build_request(args, account.address), account.address)
        outcome = asyncio.run(run_settlement(ctx, account, dry_run=args.dry_run))
        _report(outcome, config, track=args.track)
    except SettlementError as exc:
        print(f"\n❌ Error [{exc.stage}]: {exc}")
        sys.exit(1)
    except Exception as exc:
        print(f"\n❌ Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
