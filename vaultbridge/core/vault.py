"""Read-only queries against the hub vault."""

from __future__ import annotations

from dataclasses import dataclass

from web3 import AsyncWeb3, Web3

from vaultbridge.core.route import Conversion
from vaultbridge.core.tokens import VAULT_ABI, get_contract
from vaultbridge.core.utils import get_logger

LOGGER = get_logger("vaultbridge.vault")


@dataclass(frozen=True)
class ConversionPreview:
    """Expected output of a conversion, before slippage."""

    amount_in: int
    amount_out: int
    estimated: bool = False


async def vault_asset(web3: AsyncWeb3, vault_address: str) -> str:
    return Web3.to_checksum_address(await get_contract(web3, vault_address, VAULT_ABI).functions.asset().call())


async def preview_conversion(
    web3: AsyncWeb3,
    vault_address: str,
    conversion: Conversion,
    amount: int,
) -> ConversionPreview:
    """Preview ``conversion`` of ``amount`` on the vault.

    A failed preview falls back to a 1:1 estimate; the on-chain minimum amount
    is what actually protects the transfer.
    """
    if conversion is Conversion.NONE:
        return ConversionPreview(amount_in=amount, amount_out=amount)

    vault = get_contract(web3, vault_address, VAULT_ABI)
    try:
        if conversion is Conversion.DEPOSIT:
            out = await vault.functions.previewDeposit(amount).call()
        else:
            out = await vault.functions.previewRedeem(amount).call()
    except Exception as exc:
        LOGGER.warning("Vault %s preview failed (%s); using 1:1 estimate", conversion.value, exc)
        return ConversionPreview(amount_in=amount, amount_out=amount, estimated=True)

    LOGGER.info("Vault preview %s: %s -> %s", conversion.value, amount, out)
    return ConversionPreview(amount_in=amount, amount_out=int(out))


__all__ = ["ConversionPreview", "preview_conversion", "vault_asset"]
