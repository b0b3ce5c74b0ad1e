"""Allowance management for non-native assets."""

from __future__ import annotations

from typing import Optional

from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3
from web3.exceptions import TimeExhausted

from vaultbridge.core.tokens import allowance_of, get_contract
from vaultbridge.core.transactions import send_call, wait_for_receipt
from vaultbridge.core.utils import get_logger, is_native
from vaultbridge.errors import ApprovalFailure, ConfigurationError

LOGGER = get_logger("vaultbridge.approvals")

MAX_UINT256 = 2**256 - 1


class ApprovalManager:
    """Ensures ``spender`` may pull ``amount`` of a token from the signer."""

    def __init__(
        self,
        web3: AsyncWeb3,
        account: LocalAccount,
        *,
        timeout: float,
        unlimited: bool = False,
    ) -> None:
        self.web3 = web3
        self.account = account
        self.timeout = timeout
        self.unlimited = unlimited

    async def ensure_allowance(self, token: str, spender: str, amount: int) -> Optional[str]:
        """Approve ``spender`` when the current allowance is short.

        Returns the approval transaction hash, or ``None`` when the existing
        allowance already covers ``amount``.
        """
        if is_native(token):
            raise ConfigurationError("Native currency has no allowance", context={"spender": spender})

        owner = self.account.address
        context = {"token": token, "owner": owner, "spender": spender, "amount": amount}
        try:
            current = await allowance_of(self.web3, token, owner, spender)
        except Exception as exc:
            raise ApprovalFailure(f"Could not read allowance: {exc}", context=context) from exc

        if current >= amount:
            LOGGER.info("Allowance %s for %s already covers %s", current, spender, amount)
            return None

        approve_amount = MAX_UINT256 if self.unlimited else amount
        LOGGER.info("Approving %s to spend %s of %s (current allowance %s)", spender, approve_amount, token, current)
        call = get_contract(self.web3, token).functions.approve(Web3.to_checksum_address(spender), approve_amount)
        try:
            tx_hash = await send_call(self.web3, self.account, call)
        except Exception as exc:
            raise ApprovalFailure(f"Approval could not be sent: {exc}", context=context) from exc

        try:
            receipt = await wait_for_receipt(self.web3, tx_hash, timeout=self.timeout)
        except TimeExhausted as exc:
            raise ApprovalFailure("Approval not confirmed in time", context=context, tx_hash=tx_hash) from exc
        if receipt["status"] != 1:
            raise ApprovalFailure("Approval reverted", context=context, tx_hash=tx_hash)

        LOGGER.info("Approval confirmed in block %s", receipt["blockNumber"])
        return tx_hash


__all__ = ["ApprovalManager", "MAX_UINT256"]
