"""Messaging fee quotes for individual hops."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence, Tuple

from web3.contract import AsyncContract

from vaultbridge.config import DefaultsConfig
from vaultbridge.core.codec import HopInstruction
from vaultbridge.core.utils import NATIVE_DECIMALS, from_units, get_logger
from vaultbridge.errors import QuoteFailure

LOGGER = get_logger("vaultbridge.quotes")

DEFAULT_FALLBACK_FEE = 25_000_000_000_000_000
DEFAULT_BUFFER_PCT = 20


@dataclass(frozen=True)
class FeeQuote:
    """Messaging fee for one hop, as returned by ``quoteSend``."""

    native_fee: int
    lz_token_fee: int = 0
    is_fallback: bool = False

    def as_tuple(self) -> Tuple[int, int]:
        return (self.native_fee, self.lz_token_fee)


def _parse_fee(raw: Any) -> FeeQuote:
    # A single struct output comes back as a flat (nativeFee, lzTokenFee) tuple.
    if isinstance(raw, Sequence) and len(raw) == 1 and isinstance(raw[0], Sequence):
        raw = raw[0]
    native_fee, lz_token_fee = raw
    return FeeQuote(native_fee=int(native_fee), lz_token_fee=int(lz_token_fee))


async def quote_send(transport: AsyncContract, hop: HopInstruction, *, pay_in_lz_token: bool = False) -> FeeQuote:
    """Ask ``transport`` to price ``hop``."""
    raw = await transport.functions.quoteSend(hop.as_tuple(), pay_in_lz_token).call()
    return _parse_fee(raw)


def apply_buffer(fee: int, buffer_pct: int = DEFAULT_BUFFER_PCT) -> int:
    """Inflate ``fee`` by ``buffer_pct`` percent, rounding down."""
    return fee * (100 + buffer_pct) // 100


class FeeQuoter:
    """Prices hops with a failure policy chosen by how load-bearing the hop is.

    The hop submitted directly by the caller is load-bearing: a failed quote is
    fatal. The hop executed later by the hub executor is advisory: it is
    pre-funded from the value attached to the first hop and any excess is
    refunded, so a failed quote falls back to a fixed default fee.
    """

    def __init__(self, *, fallback_fee: int = DEFAULT_FALLBACK_FEE, buffer_pct: int = DEFAULT_BUFFER_PCT) -> None:
        self.fallback_fee = fallback_fee
        self.buffer_pct = buffer_pct

    @classmethod
    def from_defaults(cls, defaults: DefaultsConfig) -> "FeeQuoter":
        return cls(fallback_fee=defaults.fallback_compose_fee, buffer_pct=defaults.compose_fee_buffer_pct)

    async def quote(self, transport: AsyncContract, hop: HopInstruction, *, load_bearing: bool) -> FeeQuote:
        try:
            fee = await quote_send(transport, hop)
        except Exception as exc:
            if load_bearing:
                raise QuoteFailure(
                    f"quoteSend failed for the submitted hop: {exc}",
                    context={"transport": transport.address, "dst_eid": hop.dst_eid, "amount": hop.amount},
                ) from exc
            LOGGER.warning(
                "Inner hop quote failed on %s (dst_eid=%s): %s; using default %.6f",
                transport.address,
                hop.dst_eid,
                exc,
                from_units(self.fallback_fee, NATIVE_DECIMALS),
            )
            return FeeQuote(native_fee=self.fallback_fee, is_fallback=True)

        LOGGER.info(
            "Quoted %s hop to eid %s: nativeFee=%s lzTokenFee=%s",
            "outer" if load_bearing else "inner",
            hop.dst_eid,
            fee.native_fee,
            fee.lz_token_fee,
        )
        return fee

    def inner_funding(self, fee: FeeQuote) -> int:
        """Native value to forward for hub-side execution of the inner hop."""
        if fee.is_fallback:
            return fee.native_fee
        return apply_buffer(fee.native_fee, self.buffer_pct)


__all__ = ["DEFAULT_BUFFER_PCT", "DEFAULT_FALLBACK_FEE", "FeeQuote", "FeeQuoter", "apply_buffer", "quote_send"]
