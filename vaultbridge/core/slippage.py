"""Minimum-acceptable amount calculation."""

from __future__ import annotations

from typing import Optional

from vaultbridge.errors import ConfigurationError

BPS_DENOMINATOR = 10_000
DEFAULT_SLIPPAGE_BPS = 50


def validate_bps(slippage_bps: int) -> None:
    if isinstance(slippage_bps, bool) or not isinstance(slippage_bps, int):
        raise ConfigurationError(f"Slippage must be an integer number of basis points, got {slippage_bps!r}")
    if not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise ConfigurationError(
            f"Slippage must be between 0 and {BPS_DENOMINATOR} bps",
            context={"slippage_bps": slippage_bps},
        )


def apply_slippage(expected: int, slippage_bps: int = DEFAULT_SLIPPAGE_BPS) -> int:
    """Return ``expected`` reduced by ``slippage_bps``, rounded down."""
    validate_bps(slippage_bps)
    if expected < 0:
        raise ConfigurationError("Expected amount must not be negative", context={"expected": expected})
    return expected * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def resolve_min_amount(
    expected: int,
    *,
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
    explicit_min: Optional[int] = None,
) -> int:
    """Use ``explicit_min`` verbatim when given, otherwise derive it from slippage."""
    if explicit_min is not None:
        if explicit_min < 0:
            raise ConfigurationError("Minimum amount must not be negative", context={"min_amount": explicit_min})
        return explicit_min
    return apply_slippage(expected, slippage_bps)


__all__ = ["BPS_DENOMINATOR", "DEFAULT_SLIPPAGE_BPS", "apply_slippage", "resolve_min_amount", "validate_bps"]
