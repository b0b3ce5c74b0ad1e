"""Hop parameter construction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from web3.contract import AsyncContract

from vaultbridge.core.codec import HopInstruction, encode_compose
from vaultbridge.core.context import AttemptContext
from vaultbridge.core.options import lz_compose_options, lz_receive_options
from vaultbridge.core.quotes import FeeQuote, FeeQuoter
from vaultbridge.core.route import Conversion, RoutePlan
from vaultbridge.core.slippage import apply_slippage, resolve_min_amount
from vaultbridge.core.utils import get_logger
from vaultbridge.core.validation import validate_expected_output

LOGGER = get_logger("vaultbridge.builder")


@dataclass(frozen=True)
class Route:
    """Wire-level instructions for one settlement attempt.

    ``hops`` holds the cross-chain hops in order. ``nested`` is the instruction
    carried inside the first hop's compose payload, when there is one; for a
    two-hop route it is the second hop itself.
    """

    plan: RoutePlan
    hops: Tuple[HopInstruction, ...]
    amount: int
    expected_output: int
    compose_value: int = 0
    nested: Optional[HopInstruction] = None
    inner_quote: Optional[FeeQuote] = None

    @property
    def conversion(self) -> Conversion:
        return self.plan.conversion

    @property
    def local_conversion(self) -> bool:
        return self.plan.local_conversion

    @property
    def first_hop(self) -> HopInstruction:
        return self.hops[0]


def _delivery_hop(ctx: AttemptContext, *, dst_eid: int, amount: int, min_amount: int) -> HopInstruction:
    return HopInstruction.to_address(
        dst_eid=dst_eid,
        recipient=ctx.request.recipient,
        amount=amount,
        min_amount=min_amount,
        extra_options=lz_receive_options(ctx.config.defaults.lz_receive_gas),
    )


def _executor_hop(
    ctx: AttemptContext,
    *,
    amount: int,
    nested: HopInstruction,
    compose_value: int,
    compose_gas: int,
) -> HopInstruction:
    return HopInstruction.to_address(
        dst_eid=ctx.hub.eid,
        recipient=ctx.config.hub_contracts.composer,
        amount=amount,
        min_amount=apply_slippage(amount, ctx.slippage_bps),
        extra_options=lz_compose_options(compose_gas, compose_value),
        compose_msg=encode_compose(nested, compose_value),
    )


async def build_route(
    ctx: AttemptContext,
    plan: RoutePlan,
    *,
    amount: int,
    expected_output: int,
    min_output: Optional[int] = None,
    quoter: FeeQuoter,
    inner_transport: Optional[AsyncContract] = None,
) -> Route:
    """Assemble one hop instruction per planned leg.

    ``expected_output`` is the previewed result of the conversion (equal to
    ``amount`` when nothing converts). ``min_output`` is an explicit minimum for
    the final delivery; without it the configured slippage applies.
    ``inner_transport`` prices the hub-to-destination hop of a two-hop route.
    """
    request = ctx.request
    defaults = ctx.config.defaults

    if not plan.legs:
        return Route(plan=plan, hops=(), amount=amount, expected_output=expected_output)

    validate_expected_output(expected_output, min_output)
    final_min = resolve_min_amount(expected_output, slippage_bps=ctx.slippage_bps, explicit_min=min_output)

    if plan.hop_count == 2:
        second = _delivery_hop(ctx, dst_eid=plan.destination.eid, amount=expected_output, min_amount=final_min)
        inner_quote: Optional[FeeQuote] = None
        if request.compose_value is not None:
            compose_value = request.compose_value
        else:
            if inner_transport is None:
                raise ValueError("inner_transport is required to quote the second hop")
            inner_quote = await quoter.quote(inner_transport, second, load_bearing=False)
            compose_value = quoter.inner_funding(inner_quote)
        first = _executor_hop(
            ctx,
            amount=amount,
            nested=second,
            compose_value=compose_value,
            compose_gas=request.compose_gas or defaults.compose_gas,
        )
        route = Route(
            plan=plan,
            hops=(first, second),
            amount=amount,
            expected_output=expected_output,
            compose_value=compose_value,
            nested=second,
            inner_quote=inner_quote,
        )
    elif plan.composes:
        # The executor converts on the hub and delivers there; no second message.
        delivery = _delivery_hop(ctx, dst_eid=plan.hub.eid, amount=expected_output, min_amount=final_min)
        compose_value = request.compose_value or 0
        first = _executor_hop(
            ctx,
            amount=amount,
            nested=delivery,
            compose_value=compose_value,
            compose_gas=request.compose_gas or defaults.local_compose_gas,
        )
        route = Route(
            plan=plan,
            hops=(first,),
            amount=amount,
            expected_output=expected_output,
            compose_value=compose_value,
            nested=delivery,
        )
    else:
        # Direct hop; a local conversion has already been applied to the amount.
        hop = _delivery_hop(ctx, dst_eid=plan.destination.eid, amount=expected_output, min_amount=final_min)
        route = Route(plan=plan, hops=(hop,), amount=amount, expected_output=expected_output)

    LOGGER.info(
        "Built %s: hops=%s amount=%s expectedOut=%s minOut=%s composeValue=%s",
        plan.describe(),
        len(route.hops),
        amount,
        expected_output,
        final_min,
        route.compose_value,
    )
    return route


__all__ = ["Route", "build_route"]
