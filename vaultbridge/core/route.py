"""Route planning across the hub."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from vaultbridge.config import ASSET, SHARE, LocationConfig
from vaultbridge.errors import ConfigurationError


class Conversion(str, Enum):
    """Value conversion performed on the hub."""

    DEPOSIT = "deposit"
    REDEEM = "redeem"
    NONE = "none"

    def input_kind(self, moved: str = ASSET) -> str:
        if self is Conversion.DEPOSIT:
            return ASSET
        if self is Conversion.REDEEM:
            return SHARE
        return moved

    def output_kind(self, moved: str = ASSET) -> str:
        if self is Conversion.DEPOSIT:
            return SHARE
        if self is Conversion.REDEEM:
            return ASSET
        return moved


@dataclass(frozen=True)
class Leg:
    """A single cross-chain hop between two locations."""

    origin: LocationConfig
    destination: LocationConfig
    to_executor: bool


@dataclass(frozen=True)
class RoutePlan:
    """Outcome of planning, before any amount or fee is known."""

    source: LocationConfig
    hub: LocationConfig
    destination: LocationConfig
    conversion: Conversion
    legs: Tuple[Leg, ...]
    local_conversion: bool = False

    @property
    def hop_count(self) -> int:
        return len(self.legs)

    @property
    def composes(self) -> bool:
        """True when the first hop lands on the hub executor."""
        return bool(self.legs) and self.legs[0].to_executor

    def describe(self) -> str:
        if not self.legs:
            return f"{self.source.name} (no hop)"
        names = [self.legs[0].origin.name] + [leg.destination.name for leg in self.legs]
        label = " -> ".join(names)
        if self.conversion is not Conversion.NONE:
            where = "locally on hub" if self.local_conversion else "on hub"
            label += f" [{self.conversion.value} {where}]"
        return label


def plan_route(
    source: LocationConfig,
    hub: LocationConfig,
    destination: LocationConfig,
    conversion: Conversion = Conversion.NONE,
) -> RoutePlan:
    """Decide how many hops a transfer needs and where it converts."""
    conversion = Conversion(conversion)
    from_hub = source.same_as(hub)
    to_hub = destination.same_as(hub)

    if from_hub and to_hub:
        if conversion is not Conversion.NONE:
            raise ConfigurationError(
                "Conversion on the hub with no hop should be done directly against the vault",
                context={"eid": hub.eid, "conversion": conversion.value},
            )
        legs: Tuple[Leg, ...] = ()
    elif to_hub:
        legs = (Leg(source, hub, to_executor=conversion is not Conversion.NONE),)
    elif from_hub:
        legs = (Leg(hub, destination, to_executor=False),)
    else:
        legs = (Leg(source, hub, to_executor=True), Leg(hub, destination, to_executor=False))

    return RoutePlan(
        source=source,
        hub=hub,
        destination=destination,
        conversion=conversion,
        legs=legs,
        local_conversion=from_hub and not to_hub and conversion is not Conversion.NONE,
    )


__all__ = ["Conversion", "Leg", "RoutePlan", "plan_route"]
