"""Top-level settlement transaction submission."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3
from web3.contract import AsyncContract
from web3.contract.async_contract import AsyncContractFunction
from web3.exceptions import TimeExhausted
from web3.logs import DISCARD

from vaultbridge.core.builder import Route
from vaultbridge.core.quotes import FeeQuote
from vaultbridge.core.route import Conversion
from vaultbridge.core.transactions import send_call, wait_for_receipt
from vaultbridge.core.utils import get_logger, to_hex
from vaultbridge.errors import SubmissionFailure

LOGGER = get_logger("vaultbridge.submitter")


@dataclass(frozen=True)
class SubmissionResult:
    """Confirmed top-level transaction."""

    tx_hash: str
    block_number: int
    gas_used: int
    value: int
    guid: Optional[str] = None


def settlement_value(fee: FeeQuote, amount: int, *, native: bool) -> int:
    """Value attached to the top-level call: the hop fee, plus the amount for native assets."""
    return fee.native_fee + amount if native else fee.native_fee


def build_entry_call(
    route: Route,
    entry: AsyncContract,
    *,
    fee: FeeQuote,
    refund_address: str,
) -> AsyncContractFunction:
    """Return the contract call representing the first hop."""
    refund_address = Web3.to_checksum_address(refund_address)
    hop = route.first_hop.as_tuple()
    if route.local_conversion:
        if route.conversion is Conversion.DEPOSIT:
            return entry.functions.depositAndSend(route.amount, hop, refund_address)
        return entry.functions.redeemAndSend(route.amount, hop, refund_address)
    return entry.functions.send(hop, fee.as_tuple(), refund_address)


def extract_guid(transport: Optional[AsyncContract], receipt: Mapping[str, Any]) -> Optional[str]:
    """Pull the message guid from the transport's ``OFTSent`` log, if emitted."""
    if transport is None:
        return None
    events = transport.events.OFTSent().process_receipt(receipt, errors=DISCARD)
    for event in events:
        return to_hex(event["args"]["guid"])
    return None


async def submit_settlement(
    web3: AsyncWeb3,
    account: LocalAccount,
    call: AsyncContractFunction,
    *,
    value: int,
    timeout: float,
    on_submitted: Optional[Callable[[str], Any]] = None,
    transport: Optional[AsyncContract] = None,
) -> SubmissionResult:
    """Send the settlement transaction and wait for it to confirm.

    The hash is reported through ``on_submitted`` as soon as the node accepts
    the transaction, before confirmation.
    """
    context = {"from": account.address, "value": value}
    try:
        tx_hash = await send_call(web3, account, call, value=value, on_submitted=on_submitted)
    except Exception as exc:
        raise SubmissionFailure(f"Transaction rejected: {exc}", context=context) from exc

    try:
        receipt = await wait_for_receipt(web3, tx_hash, timeout=timeout)
    except TimeExhausted as exc:
        raise SubmissionFailure(
            f"Transaction not confirmed within {timeout}s", context=context, tx_hash=tx_hash
        ) from exc

    if receipt["status"] != 1:
        raise SubmissionFailure(
            "Transaction reverted",
            context={**context, "block": receipt.get("blockNumber")},
            tx_hash=tx_hash,
        )

    guid = extract_guid(transport, receipt)
    LOGGER.info(
        "Transaction confirmed in block %s (gasUsed=%s guid=%s)",
        receipt["blockNumber"],
        receipt["gasUsed"],
        guid,
    )
    return SubmissionResult(
        tx_hash=tx_hash,
        block_number=receipt["blockNumber"],
        gas_used=receipt["gasUsed"],
        value=value,
        guid=guid,
    )


__all__ = ["SubmissionResult", "build_entry_call", "extract_guid", "settlement_value", "submit_settlement"]
