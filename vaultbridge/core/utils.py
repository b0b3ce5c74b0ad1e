"""Utility helpers shared across vaultbridge core modules."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext
from typing import Optional, Union

from web3 import AsyncWeb3, Web3

from vaultbridge.errors import ConfigurationError

NATIVE_DECIMALS = 18
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def get_logger(name: str = "vaultbridge") -> logging.Logger:
    """Return a configured logger that prints to stdout."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


async def ensure_web3_connected(web3: AsyncWeb3, *, expected_chain_id: Optional[int] = None) -> None:
    """Validate that ``web3`` is connected and optionally matches the expected chain id."""
    if not await web3.is_connected():
        raise ConnectionError("Failed to connect to the configured RPC endpoint")
    if expected_chain_id is not None:
        chain_id = await web3.eth.chain_id
        if chain_id != expected_chain_id:
            raise ValueError(f"RPC chain ID mismatch: expected {expected_chain_id}, got {chain_id}")


def hex_to_bytes(data: str) -> bytes:
    """Convert a hex string (with or without ``0x``) to bytes."""
    data = data[2:] if data.startswith("0x") else data
    return bytes.fromhex(data)


def to_hex(value: Union[bytes, str]) -> str:
    """Render a transaction hash or byte string as ``0x``-prefixed hex."""
    if isinstance(value, str):
        return value if value.startswith("0x") else f"0x{value}"
    return Web3.to_hex(value)


def to_units(amount: Union[str, Decimal, int], decimals: int) -> int:
    """Convert a human-readable amount to smallest units, rounding down."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise ConfigurationError(f"Invalid amount: {amount!r}") from exc
    if not value.is_finite() or value < 0:
        raise ConfigurationError(f"Amount must be a non-negative number: {amount!r}")
    # exact scaling: precision must cover every digit of the scaled value
    with localcontext() as ctx:
        ctx.prec = max(len(value.as_tuple().digits) + decimals + 2, ctx.prec)
        return int(value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


def from_units(amount: int, decimals: int) -> Decimal:
    """Render smallest units as a human-readable ``Decimal`` for display only."""
    return Decimal(amount) / (Decimal(10) ** decimals)


def is_native(token_address: Optional[str]) -> bool:
    """Return True when ``token_address`` denotes the chain's native currency."""
    return token_address is None or token_address.lower() == ZERO_ADDRESS


__all__ = [
    "NATIVE_DECIMALS",
    "ZERO_ADDRESS",
    "ensure_web3_connected",
    "from_units",
    "get_logger",
    "hex_to_bytes",
    "is_native",
    "to_hex",
    "to_units",
]
