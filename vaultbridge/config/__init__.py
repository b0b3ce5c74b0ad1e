"""Configuration utilities for settlement attempts."""

from .loader import (
    ASSET,
    SHARE,
    ApiUrlsConfig,
    DefaultsConfig,
    HubContracts,
    LocationConfig,
    SettlementConfig,
    load_config,
    parse_config,
)

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
