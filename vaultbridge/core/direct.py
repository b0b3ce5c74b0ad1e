"""Same-chain vault conversion on the hub, without any cross-chain hop."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3
from web3.contract.async_contract import AsyncContractFunction

from vaultbridge.core.approvals import ApprovalManager
from vaultbridge.core.context import AttemptContext
from vaultbridge.core.route import Conversion
from vaultbridge.core.settlement import SettlementState
from vaultbridge.core.slippage import resolve_min_amount
from vaultbridge.core.submitter import SubmissionResult, submit_settlement
from vaultbridge.core.tokens import VAULT_ABI, allowance_of, balance_of, decimals_of, get_contract
from vaultbridge.core.transactions import GasParameters, estimate_gas, log_gas
from vaultbridge.core.utils import from_units, get_logger, to_units
from vaultbridge.core.validation import Preflight, validate_balance, validate_expected_output
from vaultbridge.core.vault import preview_conversion, vault_asset
from vaultbridge.errors import ConfigurationError

LOGGER = get_logger("vaultbridge.direct")


def is_direct_conversion(ctx: AttemptContext) -> bool:
    """True when the request converts on the hub and delivers on the hub."""
    return (
        ctx.request.conversion is not Conversion.NONE
        and ctx.source.same_as(ctx.hub)
        and ctx.destination.same_as(ctx.hub)
    )


@dataclass(frozen=True)
class DirectOutcome:
    """Result of :meth:`DirectConversion.execute`."""

    state: SettlementState
    preflight: Preflight
    min_output: int
    approval_tx: Optional[str] = None
    submission: Optional[SubmissionResult] = None
    gas: Optional[GasParameters] = None

    @property
    def tx_hash(self) -> Optional[str]:
        return self.submission.tx_hash if self.submission else None


class DirectConversion:
    """Deposit into or redeem from the hub vault in a single transaction.

    Follows the same states as a cross-chain attempt; there is no message
    fee, so ``QUOTED`` marks the point where the vault preview and minimum
    have been checked. The minimum is only checked against the preview: the
    vault call itself takes no minimum.
    """

    def __init__(
        self,
        ctx: AttemptContext,
        *,
        account: LocalAccount,
        hub_web3: AsyncWeb3,
        on_submitted: Optional[Callable[[str], Any]] = None,
    ) -> None:
        if not is_direct_conversion(ctx):
            raise ConfigurationError(
                "Direct conversion needs a conversion with source and destination on the hub",
                context={"source": ctx.request.source, "destination": ctx.request.destination},
            )
        self.ctx = ctx
        self.account = account
        self.web3 = hub_web3
        self.on_submitted = on_submitted
        self.state: Optional[SettlementState] = None
        self.history: List[SettlementState] = []
        self.tx_hash: Optional[str] = None

    @property
    def vault(self) -> str:
        return self.ctx.config.hub_contracts.vault

    def _transition(self, state: SettlementState) -> None:
        LOGGER.info("Conversion state: %s", state.value)
        self.state = state
        self.history.append(state)

    async def _read(self) -> Preflight:
        ctx = self.ctx
        conversion = ctx.request.conversion
        asset = await vault_asset(self.web3, self.vault)
        if conversion is Conversion.DEPOSIT:
            input_token, output_token = asset, self.vault
        else:
            input_token, output_token = self.vault, asset

        input_decimals, output_decimals, balance = await asyncio.gather(
            decimals_of(self.web3, input_token),
            decimals_of(self.web3, output_token),
            balance_of(self.web3, input_token, ctx.sender),
        )
        amount = to_units(ctx.request.amount, input_decimals)
        preview = await preview_conversion(self.web3, self.vault, conversion, amount)
        min_output = to_units(ctx.request.min_amount, output_decimals) if ctx.request.min_amount is not None else None
        return Preflight(
            entry_address=self.vault,
            input_token=input_token,
            input_decimals=input_decimals,
            output_decimals=output_decimals,
            amount=amount,
            balance=balance,
            preview=preview,
            # redeeming our own shares needs no allowance
            approval_required=conversion is Conversion.DEPOSIT,
            min_output=min_output,
        )

    async def _prepare(self) -> DirectOutcome:
        ctx = self.ctx
        LOGGER.info(
            "Route: %s (no hop) [%s directly on vault %s]", ctx.hub.name, ctx.request.conversion.value, self.vault
        )
        self._transition(SettlementState.PLANNED)

        preflight = await self._read()
        validate_balance(preflight, sender=ctx.sender)
        min_output = resolve_min_amount(
            preflight.expected_output,
            slippage_bps=ctx.slippage_bps,
            explicit_min=preflight.min_output,
        )
        validate_expected_output(preflight.expected_output, min_output)
        LOGGER.info(
            "Amount %s (%s units), expected output %s (%s units), minimum %s",
            from_units(preflight.amount, preflight.input_decimals),
            preflight.amount,
            from_units(preflight.expected_output, preflight.output_decimals),
            preflight.expected_output,
            min_output,
        )
        self._transition(SettlementState.QUOTED)
        return DirectOutcome(state=SettlementState.QUOTED, preflight=preflight, min_output=min_output)

    def _call(self, preflight: Preflight) -> AsyncContractFunction:
        vault = get_contract(self.web3, self.vault, VAULT_ABI)
        recipient = self.ctx.request.recipient
        if self.ctx.request.conversion is Conversion.DEPOSIT:
            return vault.functions.deposit(preflight.amount, recipient)
        return vault.functions.redeem(preflight.amount, recipient, self.ctx.sender)

    async def execute(self, *, dry_run: bool = False) -> DirectOutcome:
        """Check, approve and convert; ``dry_run`` stops after the checks."""
        try:
            prepared = await self._prepare()
            if dry_run:
                return DirectOutcome(
                    state=SettlementState.QUOTED,
                    preflight=prepared.preflight,
                    min_output=prepared.min_output,
                    gas=await self._dry_run_gas(prepared.preflight),
                )
            return await self._send(prepared)
        except Exception:
            self._transition(SettlementState.FAILED)
            raise

    async def _send(self, prepared: DirectOutcome) -> DirectOutcome:
        preflight = prepared.preflight
        defaults = self.ctx.config.defaults
        approval_tx: Optional[str] = None
        if preflight.approval_required:
            manager = ApprovalManager(
                self.web3,
                self.account,
                timeout=defaults.receipt_timeout,
                unlimited=defaults.approve_unlimited,
            )
            approval_tx = await manager.ensure_allowance(preflight.input_token, self.vault, preflight.amount)
            self._transition(SettlementState.APPROVED)

        submission = await submit_settlement(
            self.web3,
            self.account,
            self._call(preflight),
            value=0,
            timeout=defaults.receipt_timeout,
            on_submitted=self._submitted,
        )
        self._transition(SettlementState.CONFIRMED)
        return DirectOutcome(
            state=SettlementState.CONFIRMED,
            preflight=preflight,
            min_output=prepared.min_output,
            approval_tx=approval_tx,
            submission=submission,
        )

    def _submitted(self, tx_hash: str) -> None:
        self.tx_hash = tx_hash
        self._transition(SettlementState.SUBMITTED)
        if self.on_submitted is not None:
            self.on_submitted(tx_hash)

    async def _dry_run_gas(self, preflight: Preflight) -> Optional[GasParameters]:
        if preflight.approval_required:
            allowance = await allowance_of(self.web3, preflight.input_token, self.ctx.sender, self.vault)
            if allowance < preflight.amount:
                LOGGER.warning(
                    "Skipping gas estimate: allowance %s below %s; approval would be sent first",
                    allowance,
                    preflight.amount,
                )
                return None
        gas = await estimate_gas(self.web3, self._call(preflight), sender=self.ctx.sender)
        log_gas(gas)
        return gas


__all__ = ["DirectConversion", "DirectOutcome", "is_direct_conversion"]
