"""Pre-flight reads and balance checks."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Tuple

from web3 import AsyncWeb3

from vaultbridge.core.context import AttemptContext
from vaultbridge.core.route import Conversion, RoutePlan
from vaultbridge.core.tokens import approval_required, balance_of, decimals_of, underlying_token
from vaultbridge.core.utils import get_logger, is_native, to_units
from vaultbridge.core.vault import ConversionPreview, preview_conversion, vault_asset
from vaultbridge.errors import ConfigurationError, InsufficientBalance, SlippageViolation

LOGGER = get_logger("vaultbridge.validation")


@dataclass(frozen=True)
class Preflight:
    """Read-only state gathered before any hop is built."""

    entry_address: str
    input_token: str
    input_decimals: int
    output_decimals: int
    amount: int
    balance: int
    preview: ConversionPreview
    approval_required: bool
    min_output: Optional[int] = None

    @property
    def spender(self) -> str:
        return self.entry_address

    @property
    def native(self) -> bool:
        return is_native(self.input_token)

    @property
    def expected_output(self) -> int:
        return self.preview.amount_out


def entry_address(ctx: AttemptContext, plan: RoutePlan) -> str:
    """Contract the top-level transaction is sent to."""
    if plan.local_conversion:
        return ctx.config.hub_contracts.composer
    return plan.source.transport_for(ctx.input_kind)


async def _output_decimals(ctx: AttemptContext, hub_web3: AsyncWeb3) -> Optional[int]:
    conversion = ctx.request.conversion
    vault = ctx.config.hub_contracts.vault
    if conversion is Conversion.DEPOSIT:
        return await decimals_of(hub_web3, vault)
    if conversion is Conversion.REDEEM:
        return await decimals_of(hub_web3, await vault_asset(hub_web3, vault))
    return None


async def _input_token(ctx: AttemptContext, plan: RoutePlan, source_web3: AsyncWeb3, entry: str) -> str:
    if not plan.local_conversion:
        return await underlying_token(source_web3, entry)
    vault = ctx.config.hub_contracts.vault
    if ctx.request.conversion is Conversion.DEPOSIT:
        return await vault_asset(source_web3, vault)
    return vault


async def _input_side(
    ctx: AttemptContext, plan: RoutePlan, source_web3: AsyncWeb3, entry: str
) -> Tuple[str, int, int]:
    token = await _input_token(ctx, plan, source_web3, entry)
    decimals, balance = await asyncio.gather(
        decimals_of(source_web3, token),
        balance_of(source_web3, token, ctx.sender),
    )
    return token, decimals, balance


async def _approval_needed(plan: RoutePlan, source_web3: AsyncWeb3, entry: str) -> bool:
    if plan.local_conversion:
        return True
    return await approval_required(source_web3, entry)


async def run_preflight(
    ctx: AttemptContext,
    plan: RoutePlan,
    *,
    source_web3: AsyncWeb3,
    hub_web3: AsyncWeb3,
) -> Preflight:
    """Gather decimals, balances, approval needs and the vault preview.

    The independent reads run concurrently against the source and hub
    endpoints; only the preview waits for the amount to be known.
    """
    if not plan.legs:
        raise ConfigurationError("Route has no hops; nothing to settle", context={"eid": plan.source.eid})

    entry = entry_address(ctx, plan)
    (token, input_decimals, balance), output_decimals, needs_approval = await asyncio.gather(
        _input_side(ctx, plan, source_web3, entry),
        _output_decimals(ctx, hub_web3),
        _approval_needed(plan, source_web3, entry),
    )
    if output_decimals is None:
        output_decimals = input_decimals

    amount = to_units(ctx.request.amount, input_decimals)
    preview = await preview_conversion(hub_web3, ctx.config.hub_contracts.vault, ctx.request.conversion, amount)
    min_output = to_units(ctx.request.min_amount, output_decimals) if ctx.request.min_amount is not None else None

    LOGGER.info(
        "Preflight token=%s decimals=%s/%s amount=%s balance=%s expectedOut=%s approvalRequired=%s",
        token,
        input_decimals,
        output_decimals,
        amount,
        balance,
        preview.amount_out,
        needs_approval,
    )
    return Preflight(
        entry_address=entry,
        input_token=token,
        input_decimals=input_decimals,
        output_decimals=output_decimals,
        amount=amount,
        balance=balance,
        preview=preview,
        approval_required=needs_approval and not is_native(token),
        min_output=min_output,
    )


def validate_balance(preflight: Preflight, *, sender: str) -> None:
    """Ensure the sender holds the amount being transferred."""
    if preflight.balance < preflight.amount:
        raise InsufficientBalance(
            "Insufficient balance for transfer",
            context={
                "token": preflight.input_token,
                "holder": sender,
                "balance": preflight.balance,
                "required": preflight.amount,
            },
        )


def validate_expected_output(expected: int, min_output: Optional[int]) -> None:
    """Fail before spending gas when the preview is already below the minimum."""
    if min_output is not None and expected < min_output:
        raise SlippageViolation(
            "Expected output is below the requested minimum",
            context={"expected": expected, "min_amount": min_output},
        )


def validate_native_funding(*, native_balance: int, required_value: int, sender: str) -> None:
    """Ensure the sender can attach the transaction value."""
    if native_balance < required_value:
        raise InsufficientBalance(
            "Insufficient native balance for fees",
            context={"holder": sender, "native_balance": native_balance, "required_value": required_value},
        )


__all__ = [
    "Preflight",
    "entry_address",
    "run_preflight",
    "validate_balance",
    "validate_expected_output",
    "validate_native_funding",
]
