"""Transaction building, signing and confirmation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3
from web3.contract.async_contract import AsyncContractFunction
from web3.exceptions import ContractLogicError

from vaultbridge.core.utils import NATIVE_DECIMALS, from_units, get_logger, to_hex

LOGGER = get_logger("vaultbridge.transactions")

FALLBACK_GAS = 1_000_000
GAS_BUFFER_PCT = 10


@dataclass(frozen=True)
class GasParameters:
    """EIP-1559 gas parameters."""

    gas: int
    gas_price: int
    max_priority_fee: int
    max_fee: int
    estimated_cost: int


async def _fee_parameters(web3: AsyncWeb3) -> tuple:
    gas_price = await web3.eth.gas_price
    try:
        max_priority_fee = await web3.eth.max_priority_fee
    except Exception as exc:  # eth_maxPriorityFeePerGas is not supported by every node
        LOGGER.debug("max_priority_fee unavailable (%s); using gas price", exc)
        max_priority_fee = gas_price
    return gas_price, max_priority_fee


async def estimate_gas(
    web3: AsyncWeb3,
    call: AsyncContractFunction,
    *,
    sender: str,
    value: int = 0,
) -> GasParameters:
    """Estimate gas usage for ``call``; a predicted revert propagates as ContractLogicError."""
    gas_estimate = await call.estimate_gas({"from": sender, "value": value})
    gas_price, max_priority_fee = await _fee_parameters(web3)
    return GasParameters(
        gas=gas_estimate,
        gas_price=gas_price,
        max_priority_fee=max_priority_fee,
        max_fee=gas_price + max_priority_fee,
        estimated_cost=gas_estimate * gas_price,
    )


async def fallback_gas(web3: AsyncWeb3) -> GasParameters:
    gas_price, max_priority_fee = await _fee_parameters(web3)
    return GasParameters(
        gas=FALLBACK_GAS,
        gas_price=gas_price,
        max_priority_fee=max_priority_fee,
        max_fee=gas_price + max_priority_fee,
        estimated_cost=FALLBACK_GAS * gas_price,
    )


def log_gas(gas: GasParameters, *, label: str = "Estimate") -> None:
    LOGGER.info(
        "%s gas=%s maxFee=%.2f gwei priority=%.2f gwei estimatedCost=%.6f",
        label,
        gas.gas,
        gas.max_fee / 10**9,
        gas.max_priority_fee / 10**9,
        from_units(gas.estimated_cost, NATIVE_DECIMALS),
    )


async def send_call(
    web3: AsyncWeb3,
    account: LocalAccount,
    call: AsyncContractFunction,
    *,
    value: int = 0,
    on_submitted: Optional[Callable[[str], Any]] = None,
) -> str:
    """Sign and broadcast ``call``, returning the transaction hash.

    A revert predicted during estimation is raised; any other estimation
    failure falls back to a fixed gas limit.
    """
    try:
        gas = await estimate_gas(web3, call, sender=account.address, value=value)
        log_gas(gas)
    except ContractLogicError:
        raise
    except Exception as exc:
        LOGGER.warning("Gas estimation failed: %s", exc)
        gas = await fallback_gas(web3)
        log_gas(gas, label="Fallback")

    nonce = await web3.eth.get_transaction_count(account.address, "pending")
    params: Dict[str, Any] = {
        "from": account.address,
        "gas": gas.gas * (100 + GAS_BUFFER_PCT) // 100,
        "maxFeePerGas": gas.max_fee,
        "maxPriorityFeePerGas": gas.max_priority_fee,
        "nonce": nonce,
        "chainId": await web3.eth.chain_id,
        "value": value,
    }
    tx = await call.build_transaction(params)
    signed = account.sign_transaction(tx)
    tx_hash = to_hex(await web3.eth.send_raw_transaction(signed.raw_transaction))
    LOGGER.info("Transaction hash: %s", tx_hash)
    if on_submitted is not None:
        # already broadcast; callback errors are logged, never raised
        try:
            on_submitted(tx_hash)
        except Exception:
            LOGGER.exception("Submission callback failed for %s", tx_hash)
    return tx_hash


async def wait_for_receipt(web3: AsyncWeb3, tx_hash: str, *, timeout: float) -> Dict[str, Any]:
    """Wait for ``tx_hash`` to be mined; raises ``TimeExhausted`` after ``timeout`` seconds."""
    LOGGER.info("Awaiting confirmation of %s", tx_hash)
    return await web3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)


__all__ = [
    "FALLBACK_GAS",
    "GasParameters",
    "estimate_gas",
    "fallback_gas",
    "log_gas",
    "send_call",
    "wait_for_receipt",
]
