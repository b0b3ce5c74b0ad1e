"""Orchestration of a single settlement attempt."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.contract import AsyncContract

from vaultbridge.config import LocationConfig
from vaultbridge.core.approvals import ApprovalManager
from vaultbridge.core.builder import Route, build_route
from vaultbridge.core.context import AttemptContext
from vaultbridge.core.quotes import FeeQuote, FeeQuoter
from vaultbridge.core.route import RoutePlan, plan_route
from vaultbridge.core.submitter import SubmissionResult, build_entry_call, settlement_value, submit_settlement
from vaultbridge.core.tokens import COMPOSER_ABI, OFT_ABI, allowance_of, get_contract
from vaultbridge.core.transactions import GasParameters, estimate_gas, log_gas
from vaultbridge.core.utils import NATIVE_DECIMALS, ensure_web3_connected, from_units, get_logger
from vaultbridge.core.validation import Preflight, run_preflight, validate_balance, validate_native_funding

LOGGER = get_logger("vaultbridge.settlement")


class SettlementState(str, Enum):
    PLANNED = "planned"
    QUOTED = "quoted"
    APPROVED = "approved"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class PreparedSettlement:
    """Everything known once the load-bearing hop has been quoted."""

    plan: RoutePlan
    preflight: Preflight
    route: Route
    fee: FeeQuote
    value: int

    @property
    def native(self) -> bool:
        return self.preflight.native


@dataclass(frozen=True)
class SettlementOutcome:
    """Result of :meth:`SettlementAttempt.execute`."""

    state: SettlementState
    prepared: PreparedSettlement
    approval_tx: Optional[str] = None
    submission: Optional[SubmissionResult] = None
    gas: Optional[GasParameters] = None

    @property
    def tx_hash(self) -> Optional[str]:
        return self.submission.tx_hash if self.submission else None


def default_web3_factory(url: str) -> AsyncWeb3:
    return AsyncWeb3(AsyncHTTPProvider(url))


async def connect(
    location: LocationConfig,
    web3_factory: Callable[[str], AsyncWeb3] = default_web3_factory,
) -> AsyncWeb3:
    """Open a connection to ``location`` and check its chain id when configured."""
    url = location.ensure_rpc_url()
    web3 = web3_factory(url)
    await ensure_web3_connected(web3, expected_chain_id=location.chain_id)
    return web3


class SettlementAttempt:
    """One plan, quote, approve, submit and confirm pass.

    An attempt is single-use: any failure leaves it in ``FAILED`` and the
    caller builds a fresh attempt to try again.
    """

    def __init__(
        self,
        ctx: AttemptContext,
        *,
        account: LocalAccount,
        source_web3: AsyncWeb3,
        hub_web3: AsyncWeb3,
        quoter: Optional[FeeQuoter] = None,
        on_submitted: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self.ctx = ctx
        self.account = account
        self.source_web3 = source_web3
        self.hub_web3 = hub_web3
        self.quoter = quoter or FeeQuoter.from_defaults(ctx.config.defaults)
        self.on_submitted = on_submitted
        self.state: Optional[SettlementState] = None
        self.history: List[SettlementState] = []
        self.tx_hash: Optional[str] = None

    def _transition(self, state: SettlementState) -> None:
        LOGGER.info("Settlement state: %s", state.value)
        self.state = state
        self.history.append(state)

    def _entry_contract(self, prepared_plan: RoutePlan, preflight: Preflight) -> AsyncContract:
        if prepared_plan.local_conversion:
            return get_contract(self.source_web3, preflight.entry_address, COMPOSER_ABI)
        return get_contract(self.source_web3, preflight.entry_address, OFT_ABI)

    def _outer_transport(self, plan: RoutePlan, preflight: Preflight) -> AsyncContract:
        """Transport that prices and emits the first hop."""
        if plan.local_conversion:
            return get_contract(self.hub_web3, self.ctx.hub.transport_for(self.ctx.output_kind), OFT_ABI)
        return get_contract(self.source_web3, preflight.entry_address, OFT_ABI)

    def _inner_transport(self, plan: RoutePlan) -> Optional[AsyncContract]:
        if plan.hop_count != 2:
            return None
        return get_contract(self.hub_web3, self.ctx.hub.transport_for(self.ctx.output_kind), OFT_ABI)

    async def _prepare(self) -> PreparedSettlement:
        ctx = self.ctx
        plan = plan_route(ctx.source, ctx.hub, ctx.destination, ctx.request.conversion)
        self._transition(SettlementState.PLANNED)
        LOGGER.info("Route: %s", plan.describe())

        preflight = await run_preflight(ctx, plan, source_web3=self.source_web3, hub_web3=self.hub_web3)
        validate_balance(preflight, sender=ctx.sender)

        route = await build_route(
            ctx,
            plan,
            amount=preflight.amount,
            expected_output=preflight.expected_output,
            min_output=preflight.min_output,
            quoter=self.quoter,
            inner_transport=self._inner_transport(plan),
        )

        fee = await self.quoter.quote(self._outer_transport(plan, preflight), route.first_hop, load_bearing=True)
        value = settlement_value(fee, preflight.amount, native=preflight.native)
        native_balance = await self.source_web3.eth.get_balance(ctx.sender)
        validate_native_funding(native_balance=native_balance, required_value=value, sender=ctx.sender)
        self._transition(SettlementState.QUOTED)

        prepared = PreparedSettlement(plan=plan, preflight=preflight, route=route, fee=fee, value=value)
        self._log_prepared(prepared)
        return prepared

    async def prepare(self) -> PreparedSettlement:
        """Plan, read, build and quote without sending anything."""
        try:
            return await self._prepare()
        except Exception:
            self._transition(SettlementState.FAILED)
            raise

    async def execute(self, *, dry_run: bool = False) -> SettlementOutcome:
        """Run the attempt to confirmation, or stop after quoting when ``dry_run``."""
        prepared = await self.prepare()
        try:
            if dry_run:
                gas = await self._dry_run_gas(prepared)
                return SettlementOutcome(state=SettlementState.QUOTED, prepared=prepared, gas=gas)
            return await self._send(prepared)
        except Exception:
            self._transition(SettlementState.FAILED)
            raise

    async def _send(self, prepared: PreparedSettlement) -> SettlementOutcome:
        ctx = self.ctx
        preflight = prepared.preflight
        approval_tx: Optional[str] = None
        if preflight.approval_required:
            manager = ApprovalManager(
                self.source_web3,
                self.account,
                timeout=ctx.config.defaults.receipt_timeout,
                unlimited=ctx.config.defaults.approve_unlimited,
            )
            approval_tx = await manager.ensure_allowance(preflight.input_token, preflight.spender, preflight.amount)
            self._transition(SettlementState.APPROVED)

        call = build_entry_call(
            prepared.route,
            self._entry_contract(prepared.plan, preflight),
            fee=prepared.fee,
            refund_address=ctx.refund_address,
        )
        submission = await submit_settlement(
            self.source_web3,
            self.account,
            call,
            value=prepared.value,
            timeout=ctx.config.defaults.receipt_timeout,
            on_submitted=self._submitted,
            transport=self._outer_transport(prepared.plan, preflight),
        )
        self._transition(SettlementState.CONFIRMED)
        return SettlementOutcome(
            state=SettlementState.CONFIRMED,
            prepared=prepared,
            approval_tx=approval_tx,
            submission=submission,
        )

    def _submitted(self, tx_hash: str) -> None:
        self.tx_hash = tx_hash
        self._transition(SettlementState.SUBMITTED)
        if self.on_submitted is not None:
            self.on_submitted(tx_hash)

    async def _dry_run_gas(self, prepared: PreparedSettlement) -> Optional[GasParameters]:
        preflight = prepared.preflight
        if preflight.approval_required:
            allowance = await allowance_of(
                self.source_web3, preflight.input_token, self.ctx.sender, preflight.spender
            )
            if allowance < preflight.amount:
                LOGGER.warning(
                    "Skipping gas estimate: allowance %s below %s; approval would be sent first",
                    allowance,
                    preflight.amount,
                )
                return None

        call = build_entry_call(
            prepared.route,
            self._entry_contract(prepared.plan, preflight),
            fee=prepared.fee,
            refund_address=self.ctx.refund_address,
        )
        gas = await estimate_gas(self.source_web3, call, sender=self.ctx.sender, value=prepared.value)
        log_gas(gas)
        return gas

    def _log_prepared(self, prepared: PreparedSettlement) -> None:
        preflight = prepared.preflight
        route = prepared.route
        for index, hop in enumerate(route.hops, start=1):
            LOGGER.info(
                "Hop %s: dstEid=%s to=%s amount=%s minAmount=%s compose=%s bytes",
                index,
                hop.dst_eid,
                hop.recipient,
                hop.amount,
                hop.min_amount,
                len(hop.compose_msg),
            )
        LOGGER.info(
            "Amount %s (%s units), expected output %s (%s units)",
            from_units(preflight.amount, preflight.input_decimals),
            preflight.amount,
            from_units(preflight.expected_output, preflight.output_decimals),
            preflight.expected_output,
        )
        if route.inner_quote is not None and route.inner_quote.is_fallback:
            LOGGER.warning("Inner hop funded with fallback fee %s", route.compose_value)
        LOGGER.info(
            "Message fee %.6f, attached value %.6f (native asset=%s)",
            from_units(prepared.fee.native_fee, NATIVE_DECIMALS),
            from_units(prepared.value, NATIVE_DECIMALS),
            prepared.native,
        )


__all__ = [
    "PreparedSettlement",
    "SettlementAttempt",
    "SettlementOutcome",
    "SettlementState",
    "connect",
    "default_web3_factory",
]
