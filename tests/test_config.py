import json

import pytest

from tests.conftest import BASE_ASSET_OFT, COMPOSER, config_data
from vaultbridge.config import ASSET, SHARE, load_config, parse_config
from vaultbridge.errors import ConfigurationError


def test_defaults_applied(config) -> None:
    assert config.defaults.slippage_bps == 50
    assert config.defaults.lz_receive_gas == 100_000
    assert config.defaults.compose_gas == 395_000
    assert config.defaults.local_compose_gas == 175_000
    assert config.defaults.fallback_compose_fee == 25_000_000_000_000_000
    assert config.defaults.compose_fee_buffer_pct == 20
    assert config.defaults.approve_unlimited is False
    assert config.api_urls.layerzero_scan_ui == "https://layerzeroscan.com"


def test_locations_and_transports(config) -> None:
    base = config.location("base")
    assert base.transport_for(ASSET) == BASE_ASSET_OFT
    assert config.hub.key == "hub"
    assert config.hub_contracts.composer == COMPOSER
    assert base.same_as(config.location("base"))
    assert not base.same_as(config.hub)


def test_missing_transport_is_configuration_error() -> None:
    data = config_data()
    del data["locations"]["arb"]["share_oft"]
    config = parse_config(data, env={})
    with pytest.raises(ConfigurationError):
        config.location("arb").transport_for(SHARE)


def test_unknown_location(config) -> None:
    with pytest.raises(ConfigurationError, match="Unknown location"):
        config.location("polygon")


def test_missing_sections() -> None:
    data = config_data()
    del data["hub_contracts"]
    with pytest.raises(ConfigurationError, match="hub_contracts"):
        parse_config(data, env={})


def test_hub_must_be_configured() -> None:
    data = config_data()
    data["hub"] = "ethereum"
    with pytest.raises(ConfigurationError):
        parse_config(data, env={})


def test_duplicate_eid_rejected() -> None:
    data = config_data()
    data["locations"]["arb"]["eid"] = data["locations"]["base"]["eid"]
    with pytest.raises(ConfigurationError, match="share eid"):
        parse_config(data, env={})


def test_bad_address_rejected() -> None:
    data = config_data()
    data["hub_contracts"]["vault"] = "0x1234"
    with pytest.raises(ConfigurationError, match="Invalid address"):
        parse_config(data, env={})


@pytest.mark.parametrize(
    "defaults",
    [{"slippage_bps": 10_001}, {"compose_gas": 0}, {"receipt_timeout": -1}, {"unknown_knob": 1}],
)
def test_bad_defaults_rejected(defaults) -> None:
    data = config_data()
    data["defaults"] = defaults
    with pytest.raises(ConfigurationError):
        parse_config(data, env={})


def test_rpc_override_from_env() -> None:
    config = parse_config(config_data(), env={"RPC_URL_BASE": " https://override.invalid "})
    assert config.location("base").rpc_url == "https://override.invalid"
    assert config.location("arb").rpc_url == "http://arb.invalid"


def test_missing_rpc_url_raises() -> None:
    data = config_data()
    del data["locations"]["arb"]["rpc_url"]
    config = parse_config(data, env={})
    with pytest.raises(ConfigurationError, match="RPC URL"):
        config.location("arb").ensure_rpc_url()


def test_load_config_from_file(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config_data()), encoding="utf-8")
    assert load_config(path).hub.eid == config_data()["locations"]["hub"]["eid"]


def test_load_config_errors(tmp_path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(tmp_path / "missing.json")
    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="invalid JSON"):
        load_config(broken)
