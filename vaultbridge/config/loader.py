"""Config loader for settlement attempts."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, MutableMapping, Optional

from web3 import Web3

from vaultbridge.errors import ConfigurationError

ASSET = "asset"
SHARE = "share"

DEFAULT_LAYERZERO_SCAN_API = "https://scan.layerzero-api.com/v1"
DEFAULT_LAYERZERO_SCAN_UI = "https://layerzeroscan.com"

_DEFAULTS: Dict[str, Any] = {
    "slippage_bps": 50,
    "lz_receive_gas": 100_000,
    "compose_gas": 395_000,
    "local_compose_gas": 175_000,
    "fallback_compose_fee": 25_000_000_000_000_000,
    "compose_fee_buffer_pct": 20,
    "receipt_timeout": 300,
    "api_timeout": 10,
    "approve_unlimited": False,
}


def _require_keys(data: Mapping[str, Any], keys: Iterable[str], context: str) -> None:
    missing = [key for key in keys if key not in data]
    if missing:
        raise ConfigurationError(f"{context} missing required keys: {', '.join(missing)}")


def _to_checksum(value: str, *, field_name: str) -> str:
    try:
        return Web3.to_checksum_address(value)
    except Exception as exc:  # web3 raises ValueError/TypeError for malformed inputs
        raise ConfigurationError(f"Invalid address for {field_name}: {value}") from exc


def _optional_checksum(value: Optional[str], *, field_name: str) -> Optional[str]:
    if value in (None, ""):
        return None
    return _to_checksum(value, field_name=field_name)


@dataclass(frozen=True)
class LocationConfig:
    """A chain reachable through the messaging layer."""

    key: str
    eid: int
    name: str
    rpc_url: Optional[str] = None
    chain_id: Optional[int] = None
    asset_oft: Optional[str] = None
    share_oft: Optional[str] = None

    def ensure_rpc_url(self) -> str:
        """Return the RPC URL or raise if it is missing."""
        if not self.rpc_url:
            raise ConfigurationError(f"RPC URL required for {self.name} but not configured")
        return self.rpc_url

    def transport_for(self, kind: str) -> str:
        """Return the OFT transport moving ``kind`` (asset or share) on this location."""
        address = self.asset_oft if kind == ASSET else self.share_oft
        if not address:
            raise ConfigurationError(f"No {kind} transport configured for {self.name}", context={"eid": self.eid})
        return address

    def same_as(self, other: "LocationConfig") -> bool:
        return self.eid == other.eid


@dataclass(frozen=True)
class HubContracts:
    """Vault and executor deployed on the hub."""

    vault: str
    composer: str


@dataclass(frozen=True)
class DefaultsConfig:
    """Default operational parameters."""

    slippage_bps: int
    lz_receive_gas: int
    compose_gas: int
    local_compose_gas: int
    fallback_compose_fee: int
    compose_fee_buffer_pct: int
    receipt_timeout: int
    api_timeout: int
    approve_unlimited: bool


@dataclass(frozen=True)
class ApiUrlsConfig:
    """Message tracking endpoints."""

    layerzero_scan: str = DEFAULT_LAYERZERO_SCAN_API
    layerzero_scan_ui: str = DEFAULT_LAYERZERO_SCAN_UI


@dataclass(frozen=True)
class SettlementConfig:
    """Typed wrapper around the settlement configuration."""

    hub: LocationConfig
    locations: Mapping[str, LocationConfig]
    hub_contracts: HubContracts
    defaults: DefaultsConfig
    api_urls: ApiUrlsConfig
    raw: Mapping[str, Any] = field(repr=False, default_factory=dict)

    def location(self, key: str) -> LocationConfig:
        """Look up a location by its config key."""
        try:
            return self.locations[key]
        except KeyError as exc:
            known = ", ".join(sorted(self.locations))
            raise ConfigurationError(f"Unknown location '{key}' (known: {known})") from exc

    def to_dict(self) -> Dict[str, Any]:
        """Return the raw configuration mapping."""
        return dict(self.raw)


def _parse_location(key: str, data: Mapping[str, Any], env: Mapping[str, str]) -> LocationConfig:
    _require_keys(data, ["eid", "name"], f"location {key}")
    rpc_override = (env.get(f"RPC_URL_{key.upper()}") or "").strip()
    chain_id = data.get("chain_id")
    return LocationConfig(
        key=key,
        eid=int(data["eid"]),
        name=str(data["name"]),
        rpc_url=rpc_override or data.get("rpc_url") or None,
        chain_id=int(chain_id) if chain_id is not None else None,
        asset_oft=_optional_checksum(data.get("asset_oft"), field_name=f"{key}.asset_oft"),
        share_oft=_optional_checksum(data.get("share_oft"), field_name=f"{key}.share_oft"),
    )


def _parse_defaults(data: Mapping[str, Any]) -> DefaultsConfig:
    unknown = sorted(set(data) - set(_DEFAULTS))
    if unknown:
        raise ConfigurationError(f"defaults contains unknown keys: {', '.join(unknown)}")
    merged = {**_DEFAULTS, **data}
    try:
        defaults = DefaultsConfig(
            slippage_bps=int(merged["slippage_bps"]),
            lz_receive_gas=int(merged["lz_receive_gas"]),
            compose_gas=int(merged["compose_gas"]),
            local_compose_gas=int(merged["local_compose_gas"]),
            fallback_compose_fee=int(merged["fallback_compose_fee"]),
            compose_fee_buffer_pct=int(merged["compose_fee_buffer_pct"]),
            receipt_timeout=int(merged["receipt_timeout"]),
            api_timeout=int(merged["api_timeout"]),
            approve_unlimited=bool(merged["approve_unlimited"]),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"defaults contains a non-numeric value: {exc}") from exc

    if not 0 <= defaults.slippage_bps <= 10_000:
        raise ConfigurationError("defaults.slippage_bps must be between 0 and 10000")
    if defaults.lz_receive_gas <= 0 or defaults.compose_gas <= 0 or defaults.local_compose_gas <= 0:
        raise ConfigurationError("defaults gas budgets must be positive")
    if defaults.fallback_compose_fee < 0:
        raise ConfigurationError("defaults.fallback_compose_fee must not be negative")
    if defaults.compose_fee_buffer_pct < 0:
        raise ConfigurationError("defaults.compose_fee_buffer_pct must not be negative")
    if defaults.receipt_timeout <= 0:
        raise ConfigurationError("defaults.receipt_timeout must be positive")
    if defaults.api_timeout <= 0:
        raise ConfigurationError("defaults.api_timeout must be positive")
    return defaults


def parse_config(data: Mapping[str, Any], *, env: Optional[Mapping[str, str]] = None) -> SettlementConfig:
    """Validate a configuration mapping."""
    env = os.environ if env is None else env
    _require_keys(data, ["hub", "locations", "hub_contracts"], "config")

    locations_data = data["locations"]
    if not isinstance(locations_data, Mapping) or not locations_data:
        raise ConfigurationError("locations must be a non-empty mapping")

    locations = {key: _parse_location(key, value, env) for key, value in locations_data.items()}
    eids: Dict[int, str] = {}
    for key, location in locations.items():
        if location.eid in eids:
            raise ConfigurationError(f"locations {eids[location.eid]} and {key} share eid {location.eid}")
        eids[location.eid] = key

    hub_key = str(data["hub"])
    if hub_key not in locations:
        raise ConfigurationError(f"hub '{hub_key}' is not a configured location")

    hub_contracts_data = data["hub_contracts"]
    _require_keys(hub_contracts_data, ["vault", "composer"], "hub_contracts")
    hub_contracts = HubContracts(
        vault=_to_checksum(hub_contracts_data["vault"], field_name="hub vault"),
        composer=_to_checksum(hub_contracts_data["composer"], field_name="hub composer"),
    )

    api_urls_data = data.get("api_urls") or {}
    api_urls = ApiUrlsConfig(
        layerzero_scan=str(api_urls_data.get("layerzero_scan", DEFAULT_LAYERZERO_SCAN_API)).rstrip("/"),
        layerzero_scan_ui=str(api_urls_data.get("layerzero_scan_ui", DEFAULT_LAYERZERO_SCAN_UI)).rstrip("/"),
    )

    return SettlementConfig(
        hub=locations[hub_key],
        locations=locations,
        hub_contracts=hub_contracts,
        defaults=_parse_defaults(data.get("defaults") or {}),
        api_urls=api_urls,
        raw=data,
    )


def _load_json(path: Path) -> MutableMapping[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Config file contains invalid JSON: {path}") from exc


def load_config(config_path: Optional[Path] = None) -> SettlementConfig:
    """Load and validate settlement configuration data."""
    config_path = config_path or Path("config.json")
    return parse_config(_load_json(config_path))


__all__ = [
    "ASSET",
    "ApiUrlsConfig",
    "DefaultsConfig",
    "HubContracts",
    "LocationConfig",
    "SHARE",
    "SettlementConfig",
    "load_config",
    "parse_config",
]
