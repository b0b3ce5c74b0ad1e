"""Hop instruction and compose payload encoding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from vaultbridge.errors import ConfigurationError, MalformedCompose

SEND_PARAM_TYPE = "(uint32,bytes32,uint256,uint256,bytes,bytes,bytes)"
COMPOSE_TYPES = [SEND_PARAM_TYPE, "uint256"]
EMPTY_COMPOSE = b""

_UINT32_MAX = 2**32 - 1
_UINT256_MAX = 2**256 - 1


def address_to_bytes32(address: str) -> bytes:
    """Left-pad a 20-byte address to the 32-byte recipient format."""
    return bytes(12) + bytes.fromhex(Web3.to_checksum_address(address)[2:])


def bytes32_to_address(value: bytes) -> str:
    """Inverse of :func:`address_to_bytes32`."""
    if len(value) != 32 or any(value[:12]):
        raise ValueError(f"Not a left-padded address: 0x{value.hex()}")
    return Web3.to_checksum_address(value[12:])


@dataclass(frozen=True)
class HopInstruction:
    """One outbound transfer, laid out like the OFT ``SendParam`` struct."""

    dst_eid: int
    to: bytes
    amount: int
    min_amount: int
    extra_options: bytes = b""
    compose_msg: bytes = EMPTY_COMPOSE
    oft_cmd: bytes = b""

    def __post_init__(self) -> None:
        if not 0 <= self.dst_eid <= _UINT32_MAX:
            raise ConfigurationError("dst_eid out of range", context={"dst_eid": self.dst_eid})
        if len(self.to) != 32:
            raise ConfigurationError("recipient must be 32 bytes", context={"length": len(self.to)})
        if not 0 <= self.amount <= _UINT256_MAX:
            raise ConfigurationError("amount out of range", context={"amount": self.amount})
        if not 0 <= self.min_amount <= self.amount:
            raise ConfigurationError(
                "min_amount must be between 0 and amount",
                context={"amount": self.amount, "min_amount": self.min_amount},
            )

    @classmethod
    def to_address(
        cls,
        *,
        dst_eid: int,
        recipient: str,
        amount: int,
        min_amount: int,
        extra_options: bytes = b"",
        compose_msg: bytes = EMPTY_COMPOSE,
    ) -> "HopInstruction":
        return cls(
            dst_eid=dst_eid,
            to=address_to_bytes32(recipient),
            amount=amount,
            min_amount=min_amount,
            extra_options=extra_options,
            compose_msg=compose_msg,
        )

    @property
    def recipient(self) -> str:
        return bytes32_to_address(self.to)

    @property
    def has_compose(self) -> bool:
        return bool(self.compose_msg)

    def as_tuple(self) -> Tuple[int, bytes, int, int, bytes, bytes, bytes]:
        """Return the positional form accepted by ``quoteSend`` / ``send``."""
        return (
            self.dst_eid,
            self.to,
            self.amount,
            self.min_amount,
            self.extra_options,
            self.compose_msg,
            self.oft_cmd,
        )

    @classmethod
    def from_tuple(cls, values: Tuple) -> "HopInstruction":
        dst_eid, to, amount, min_amount, extra_options, compose_msg, oft_cmd = values
        return cls(
            dst_eid=int(dst_eid),
            to=bytes(to),
            amount=int(amount),
            min_amount=int(min_amount),
            extra_options=bytes(extra_options),
            compose_msg=bytes(compose_msg),
            oft_cmd=bytes(oft_cmd),
        )


def encode_compose(hop: Optional[HopInstruction], msg_value: int = 0) -> bytes:
    """Serialize the downstream hop plus the native value forwarded with it.

    ``None`` encodes to :data:`EMPTY_COMPOSE`, meaning no further hop.
    """
    if hop is None:
        return EMPTY_COMPOSE
    if not 0 <= msg_value <= _UINT256_MAX:
        raise ConfigurationError("compose value out of range", context={"msg_value": msg_value})
    return encode(COMPOSE_TYPES, [hop.as_tuple(), msg_value])


def decode_compose(payload: bytes) -> Tuple[Optional[HopInstruction], int]:
    """Decode a compose payload, rejecting anything that does not re-encode exactly."""
    payload = bytes(payload)
    if payload == EMPTY_COMPOSE:
        return None, 0

    try:
        send_param, msg_value = decode(COMPOSE_TYPES, payload)
    except (DecodingError, ValueError, TypeError, OverflowError) as exc:
        raise MalformedCompose(f"Undecodable compose payload: {exc}", context={"length": len(payload)}) from exc

    try:
        hop = HopInstruction.from_tuple(send_param)
    except ConfigurationError as exc:
        raise MalformedCompose(f"Invalid nested hop: {exc.message}", context=exc.context) from exc

    if encode(COMPOSE_TYPES, [hop.as_tuple(), msg_value]) != payload:
        raise MalformedCompose("Compose payload is not canonically encoded", context={"length": len(payload)})
    return hop, int(msg_value)


__all__ = [
    "COMPOSE_TYPES",
    "EMPTY_COMPOSE",
    "HopInstruction",
    "SEND_PARAM_TYPE",
    "address_to_bytes32",
    "bytes32_to_address",
    "decode_compose",
    "encode_compose",
]
