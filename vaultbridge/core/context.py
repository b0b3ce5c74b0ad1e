"""Per-attempt request and context values."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Optional

from web3 import Web3

from vaultbridge.config import ASSET, SHARE, LocationConfig, SettlementConfig
from vaultbridge.core.route import Conversion
from vaultbridge.core.slippage import validate_bps
from vaultbridge.errors import ConfigurationError


def _checksum(value: str, *, field_name: str) -> str:
    try:
        return Web3.to_checksum_address(value)
    except Exception as exc:  # web3 raises ValueError/TypeError for malformed inputs
        raise ConfigurationError(f"Invalid address for {field_name}: {value}") from exc


def _check_amount(value: str, *, field_name: str) -> None:
    try:
        parsed = Decimal(str(value))
    except InvalidOperation as exc:
        raise ConfigurationError(f"{field_name} is not a number: {value!r}") from exc
    if not parsed.is_finite() or parsed < 0:
        raise ConfigurationError(f"{field_name} must be a non-negative number: {value!r}")


@dataclass(frozen=True)
class TransferRequest:
    """Parameters of a single settlement attempt.

    ``amount`` and ``min_amount`` are human-readable strings; they are turned
    into smallest units once the relevant token decimals have been read.
    ``min_amount`` bounds the final delivery, in the delivered asset.
    """

    source: str
    destination: str
    amount: str
    recipient: str
    conversion: Conversion = Conversion.NONE
    moved: str = ASSET
    min_amount: Optional[str] = None
    slippage_bps: Optional[int] = None
    compose_gas: Optional[int] = None
    compose_value: Optional[int] = None
    refund_address: Optional[str] = None

    def validated(self) -> "TransferRequest":
        """Return a copy with normalized fields, raising on invalid input."""
        if self.moved not in (ASSET, SHARE):
            raise ConfigurationError(f"moved must be '{ASSET}' or '{SHARE}', got {self.moved!r}")
        try:
            conversion = Conversion(self.conversion)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown conversion: {self.conversion!r}") from exc
        _check_amount(self.amount, field_name="amount")
        if self.min_amount is not None:
            _check_amount(self.min_amount, field_name="min_amount")
        if self.slippage_bps is not None:
            validate_bps(self.slippage_bps)
        if self.compose_gas is not None and self.compose_gas <= 0:
            raise ConfigurationError("compose_gas must be positive", context={"compose_gas": self.compose_gas})
        if self.compose_value is not None and self.compose_value < 0:
            raise ConfigurationError("compose_value must not be negative", context={"compose_value": self.compose_value})
        return replace(
            self,
            conversion=conversion,
            recipient=_checksum(self.recipient, field_name="recipient"),
            refund_address=(
                _checksum(self.refund_address, field_name="refund_address") if self.refund_address else None
            ),
        )


@dataclass(frozen=True)
class AttemptContext:
    """Everything one attempt needs, threaded explicitly through each step."""

    config: SettlementConfig
    request: TransferRequest
    sender: str

    @classmethod
    def create(cls, config: SettlementConfig, request: TransferRequest, sender: str) -> "AttemptContext":
        request = request.validated()
        config.location(request.source)
        config.location(request.destination)
        return cls(config=config, request=request, sender=_checksum(sender, field_name="sender"))

    @property
    def source(self) -> LocationConfig:
        return self.config.location(self.request.source)

    @property
    def destination(self) -> LocationConfig:
        return self.config.location(self.request.destination)

    @property
    def hub(self) -> LocationConfig:
        return self.config.hub

    @property
    def slippage_bps(self) -> int:
        if self.request.slippage_bps is not None:
            return self.request.slippage_bps
        return self.config.defaults.slippage_bps

    @property
    def refund_address(self) -> str:
        return self.request.refund_address or self.sender

    @property
    def input_kind(self) -> str:
        return self.request.conversion.input_kind(self.request.moved)

    @property
    def output_kind(self) -> str:
        return self.request.conversion.output_kind(self.request.moved)


__all__ = ["AttemptContext", "TransferRequest"]
