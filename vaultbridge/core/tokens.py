"""Token, transport and balance helpers."""

from __future__ import annotations

from web3 import AsyncWeb3, Web3
from web3.contract import AsyncContract

from vaultbridge.contracts import load_contract_abi
from vaultbridge.core.utils import NATIVE_DECIMALS, ZERO_ADDRESS, get_logger, is_native

LOGGER = get_logger("vaultbridge.tokens")

ERC20_ABI = "erc20.json"
OFT_ABI = "oft.json"
VAULT_ABI = "vault.json"
COMPOSER_ABI = "composer.json"


def get_contract(web3: AsyncWeb3, address: str, abi_name: str = ERC20_ABI) -> AsyncContract:
    """Return a contract instance for ``address`` bound to ``abi_name`` on ``web3``."""
    checksum_address = Web3.to_checksum_address(address)
    return web3.eth.contract(address=checksum_address, abi=load_contract_abi(abi_name))


async def decimals_of(web3: AsyncWeb3, token_address: str) -> int:
    """Read ``decimals()``; the native currency has no contract and uses 18."""
    if is_native(token_address):
        return NATIVE_DECIMALS
    return int(await get_contract(web3, token_address).functions.decimals().call())


async def balance_of(web3: AsyncWeb3, token_address: str, owner: str) -> int:
    """Fetch the ERC20 balance, or the native balance for the zero address."""
    owner = Web3.to_checksum_address(owner)
    if is_native(token_address):
        return int(await web3.eth.get_balance(owner))
    return int(await get_contract(web3, token_address).functions.balanceOf(owner).call())


async def allowance_of(web3: AsyncWeb3, token_address: str, owner: str, spender: str) -> int:
    """Fetch the ERC20 allowance."""
    contract = get_contract(web3, token_address)
    return int(
        await contract.functions.allowance(
            Web3.to_checksum_address(owner),
            Web3.to_checksum_address(spender),
        ).call()
    )


async def underlying_token(web3: AsyncWeb3, transport_address: str) -> str:
    """Return the token moved by an OFT transport; the zero address means native."""
    token = await get_contract(web3, transport_address, OFT_ABI).functions.token().call()
    return ZERO_ADDRESS if is_native(token) else Web3.to_checksum_address(token)


async def approval_required(web3: AsyncWeb3, transport_address: str) -> bool:
    """Ask the transport whether it pulls tokens via ``transferFrom``.

    Read failures are not treated as "no approval needed": the caller falls
    back to an explicit allowance check.
    """
    try:
        return bool(await get_contract(web3, transport_address, OFT_ABI).functions.approvalRequired().call())
    except Exception as exc:
        LOGGER.warning("approvalRequired() read failed on %s: %s; checking allowance instead", transport_address, exc)
        return True


__all__ = [
    "COMPOSER_ABI",
    "ERC20_ABI",
    "OFT_ABI",
    "VAULT_ABI",
    "allowance_of",
    "approval_required",
    "balance_of",
    "decimals_of",
    "get_contract",
    "underlying_token",
]
