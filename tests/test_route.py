import itertools

import pytest

from vaultbridge.core.route import Conversion, plan_route
from vaultbridge.errors import ConfigurationError


def test_every_triple_plans_or_rejects(config) -> None:
    locations = list(config.locations.values())
    hub = config.hub
    for source, destination, conversion in itertools.product(locations, locations, list(Conversion)):
        all_hub = source.same_as(hub) and destination.same_as(hub)
        if all_hub and conversion is not Conversion.NONE:
            with pytest.raises(ConfigurationError):
                plan_route(source, hub, destination, conversion)
            continue
        first = plan_route(source, hub, destination, conversion)
        assert first == plan_route(source, hub, destination, conversion)
        assert first.hop_count in (0, 1, 2)


def test_spoke_to_spoke_is_two_hops_through_executor(config) -> None:
    plan = plan_route(config.location("base"), config.hub, config.location("arb"), Conversion.DEPOSIT)
    assert plan.hop_count == 2
    assert plan.legs[0].to_executor
    assert plan.legs[0].destination == config.hub
    assert not plan.legs[1].to_executor
    assert plan.legs[1].destination == config.location("arb")
    assert not plan.local_conversion


def test_round_trip_through_hub(config) -> None:
    base = config.location("base")
    plan = plan_route(base, config.hub, base, Conversion.NONE)
    assert plan.hop_count == 2
    assert plan.composes


def test_spoke_to_hub_without_conversion_lands_on_recipient(config) -> None:
    plan = plan_route(config.location("base"), config.hub, config.hub)
    assert plan.hop_count == 1
    assert not plan.composes


def test_spoke_to_hub_with_conversion_lands_on_executor(config) -> None:
    plan = plan_route(config.location("base"), config.hub, config.hub, Conversion.REDEEM)
    assert plan.hop_count == 1
    assert plan.composes
    assert not plan.local_conversion


def test_hub_to_spoke_converts_locally(config) -> None:
    plan = plan_route(config.hub, config.hub, config.location("arb"), Conversion.DEPOSIT)
    assert plan.hop_count == 1
    assert plan.local_conversion
    assert not plan.composes
    assert "locally" in plan.describe()


def test_hub_to_hub(config) -> None:
    assert plan_route(config.hub, config.hub, config.hub).hop_count == 0
    with pytest.raises(ConfigurationError):
        plan_route(config.hub, config.hub, config.hub, Conversion.DEPOSIT)


def test_conversion_kinds() -> None:
    assert Conversion.DEPOSIT.input_kind() == "asset"
    assert Conversion.DEPOSIT.output_kind() == "share"
    assert Conversion.REDEEM.input_kind() == "share"
    assert Conversion.REDEEM.output_kind() == "asset"
    assert Conversion.NONE.input_kind("share") == "share"
