from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import pytest

from tests.fakes import FakeAccount, FakeContract, FakeEth, FakeToken, FakeWeb3, addr
from vaultbridge.config import parse_config

HUB_EID = 30101
BASE_EID = 30184
ARB_EID = 30110

SENDER = addr(0x5E)
RECIPIENT = addr(0xBE)

VAULT = addr(0x0A)
COMPOSER = addr(0x0C)
HUB_ASSET_OFT = addr(0xA1)
HUB_SHARE_OFT = addr(0xA2)
BASE_ASSET_OFT = addr(0xB1)
BASE_SHARE_OFT = addr(0xB2)
ARB_ASSET_OFT = addr(0xC1)
ARB_SHARE_OFT = addr(0xC2)
BASE_USDC = addr(0x61)
HUB_USDC = addr(0x62)


def config_data() -> Dict[str, Any]:
    return {
        "hub": "hub",
        "locations": {
            "hub": {
                "eid": HUB_EID,
                "name": "Hub",
                "rpc_url": "http://hub.invalid",
                "chain_id": 1,
                "asset_oft": HUB_ASSET_OFT,
                "share_oft": HUB_SHARE_OFT,
            },
            "base": {
                "eid": BASE_EID,
                "name": "Base",
                "rpc_url": "http://base.invalid",
                "chain_id": 8453,
                "asset_oft": BASE_ASSET_OFT,
                "share_oft": BASE_SHARE_OFT,
            },
            "arb": {
                "eid": ARB_EID,
                "name": "Arbitrum",
                "rpc_url": "http://arb.invalid",
                "asset_oft": ARB_ASSET_OFT,
                "share_oft": ARB_SHARE_OFT,
            },
        },
        "hub_contracts": {"vault": VAULT, "composer": COMPOSER},
    }


@pytest.fixture
def config():
    return parse_config(config_data(), env={})


GUID = b"\x42" * 32


@dataclass
class Network:
    hub: FakeWeb3
    base: FakeWeb3
    account: FakeAccount
    base_usdc: FakeToken
    hub_usdc: FakeToken
    vault: FakeContract
    composer: FakeContract
    base_asset_oft: FakeContract
    base_share_oft: FakeContract
    hub_asset_oft: FakeContract
    hub_share_oft: FakeContract


def build_network() -> Network:
    hub_eth = FakeEth(chain_id=1, native_balances={SENDER: 10**18})
    base_eth = FakeEth(chain_id=8453, native_balances={SENDER: 10**18})

    hub_usdc = hub_eth.register(FakeToken(HUB_USDC, balances={SENDER: 10**12}))
    vault = hub_eth.register(
        FakeContract(
            VAULT,
            {
                "asset": HUB_USDC,
                "decimals": 6,
                "balanceOf": lambda owner: 10**12 if owner == SENDER else 0,
                "allowance": 0,
                "previewDeposit": lambda amount: amount * 99 // 100,
                "previewRedeem": lambda shares: shares * 101 // 100,
            },
        )
    )
    composer = hub_eth.register(FakeContract(COMPOSER, {}))
    hub_asset_oft = hub_eth.register(
        FakeContract(
            HUB_ASSET_OFT,
            {"token": HUB_USDC, "approvalRequired": True, "quoteSend": (2 * 10**15, 0)},
            emitted=[GUID],
        )
    )
    hub_share_oft = hub_eth.register(
        FakeContract(
            HUB_SHARE_OFT,
            {"token": VAULT, "approvalRequired": True, "quoteSend": (2 * 10**15, 0)},
            emitted=[GUID],
        )
    )

    base_usdc = base_eth.register(FakeToken(BASE_USDC, balances={SENDER: 5_000_000}))
    base_asset_oft = base_eth.register(
        FakeContract(
            BASE_ASSET_OFT,
            {"token": BASE_USDC, "approvalRequired": True, "quoteSend": (10**15, 0)},
            emitted=[GUID],
        )
    )
    base_share_oft = base_eth.register(
        FakeContract(
            BASE_SHARE_OFT,
            {
                "token": BASE_SHARE_OFT,
                "approvalRequired": False,
                "decimals": 6,
                "balanceOf": lambda owner: 2_000_000 if owner == SENDER else 0,
                "quoteSend": (10**15, 0),
            },
            emitted=[GUID],
        )
    )

    return Network(
        hub=FakeWeb3(hub_eth),
        base=FakeWeb3(base_eth),
        account=FakeAccount(SENDER),
        base_usdc=base_usdc,
        hub_usdc=hub_usdc,
        vault=vault,
        composer=composer,
        base_asset_oft=base_asset_oft,
        base_share_oft=base_share_oft,
        hub_asset_oft=hub_asset_oft,
        hub_share_oft=hub_share_oft,
    )


@pytest.fixture
def network() -> Network:
    return build_network()
