"""In-memory stand-ins for the parts of AsyncWeb3 the settlement code touches."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple

from web3 import Web3
from web3.exceptions import TimeExhausted


def addr(byte: int) -> str:
    return Web3.to_checksum_address("0x" + f"{byte:02x}" * 20)


class FakeCall:
    def __init__(self, contract: "FakeContract", name: str, args: Tuple[Any, ...]) -> None:
        self.contract = contract
        self.name = name
        self.args = args

    async def call(self) -> Any:
        return self.contract.invoke(self.name, self.args)

    async def estimate_gas(self, tx: Dict[str, Any]) -> int:
        self.contract.estimates.append((self.name, self.args, tx))
        error = self.contract.estimate_errors.get(self.name)
        if error is not None:
            raise error
        return self.contract.gas

    async def build_transaction(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {**params, "to": self.contract.address, "_call": (self.contract, self.name, self.args)}


class FakeFunctions:
    def __init__(self, contract: "FakeContract") -> None:
        self._contract = contract

    def __getattr__(self, name: str) -> Callable[..., FakeCall]:
        return lambda *args: FakeCall(self._contract, name, args)


class FakeEvent:
    def __init__(self, contract: "FakeContract") -> None:
        self.contract = contract

    def process_receipt(self, receipt: Dict[str, Any], errors: Any = None) -> List[Dict[str, Any]]:
        return [{"args": {"guid": guid}} for guid in self.contract.emitted]


class FakeEvents:
    def __init__(self, contract: "FakeContract") -> None:
        self._contract = contract

    def OFTSent(self) -> FakeEvent:
        return FakeEvent(self._contract)


class FakeContract:
    """Contract whose read functions are answered from ``handlers``.

    A handler is either a plain value, an exception instance (raised), or a
    callable receiving the call arguments. ``effects`` run when a transaction
    calling that function is broadcast.
    """

    def __init__(
        self,
        address: str,
        handlers: Optional[Dict[str, Any]] = None,
        *,
        effects: Optional[Dict[str, Callable[..., None]]] = None,
        gas: int = 200_000,
        emitted: Optional[List[bytes]] = None,
    ) -> None:
        self.address = Web3.to_checksum_address(address)
        self.handlers = dict(handlers or {})
        self.effects = dict(effects or {})
        self.gas = gas
        self.emitted = list(emitted or [])
        self.estimate_errors: Dict[str, Exception] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.estimates: List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]] = []
        self.functions = FakeFunctions(self)
        self.events = FakeEvents(self)

    def invoke(self, name: str, args: Tuple[Any, ...]) -> Any:
        self.calls.append((name, args))
        if name not in self.handlers:
            raise RuntimeError(f"execution reverted: {name} not available")
        handler = self.handlers[name]
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(*args)
        return handler

    def called(self, name: str) -> List[Tuple[Any, ...]]:
        return [args for call_name, args in self.calls if call_name == name]


class FakeToken(FakeContract):
    """ERC20 with real balance and allowance bookkeeping."""

    def __init__(self, address: str, *, decimals: int = 6, balances: Optional[Dict[str, int]] = None) -> None:
        self.balances = {Web3.to_checksum_address(k): v for k, v in (balances or {}).items()}
        self.allowances: Dict[Tuple[str, str], int] = {}
        super().__init__(
            address,
            {
                "decimals": decimals,
                "balanceOf": lambda owner: self.balances.get(owner, 0),
                "allowance": lambda owner, spender: self.allowances.get((owner, spender), 0),
            },
            effects={"approve": self._approve},
            gas=50_000,
        )

    def _approve(self, sender: str, spender: str, amount: int) -> None:
        self.allowances[(sender, spender)] = amount


class FakeEth:
    def __init__(
        self,
        *,
        chain_id: int = 1,
        gas_price: int = 1_000_000_000,
        max_priority_fee: Optional[int] = 100_000_000,
        native_balances: Optional[Dict[str, int]] = None,
    ) -> None:
        self._chain_id = chain_id
        self._gas_price = gas_price
        self._max_priority_fee = max_priority_fee
        self.native_balances = {Web3.to_checksum_address(k): v for k, v in (native_balances or {}).items()}
        self.contracts: Dict[str, FakeContract] = {}
        self.sent: List[Dict[str, Any]] = []
        self.receipt_status: Dict[str, Any] = {}
        self._hashes: Dict[str, Dict[str, Any]] = {}

    def register(self, contract: FakeContract) -> FakeContract:
        self.contracts[contract.address] = contract
        return contract

    def contract(self, address: str = None, abi: Any = None) -> FakeContract:
        return self.contracts[Web3.to_checksum_address(address)]

    @property
    async def chain_id(self) -> int:
        return self._chain_id

    @property
    async def gas_price(self) -> int:
        return self._gas_price

    @property
    async def max_priority_fee(self) -> int:
        if self._max_priority_fee is None:
            raise ValueError("method eth_maxPriorityFeePerGas not supported")
        return self._max_priority_fee

    async def get_balance(self, owner: str) -> int:
        return self.native_balances.get(Web3.to_checksum_address(owner), 0)

    async def get_transaction_count(self, owner: str, block: str = "latest") -> int:
        return len(self.sent)

    async def send_raw_transaction(self, raw: Dict[str, Any]) -> bytes:
        contract, name, args = raw["_call"]
        self.sent.append(raw)
        tx_hash = bytes([len(self.sent)]) * 32
        self._hashes[Web3.to_hex(tx_hash)] = raw
        effect = contract.effects.get(name)
        if effect is not None and self.receipt_status.get(name, 1) == 1:
            effect(raw["from"], *args)
        return tx_hash

    async def wait_for_transaction_receipt(self, tx_hash: str, timeout: float = 120) -> Dict[str, Any]:
        raw = self._hashes[tx_hash]
        _, name, _ = raw["_call"]
        status = self.receipt_status.get(name, 1)
        if status == "timeout":
            raise TimeExhausted(f"Transaction {tx_hash} is not in the chain after {timeout} seconds")
        return {"status": status, "blockNumber": 100 + len(self.sent), "gasUsed": 21_000, "logs": []}

    def sent_calls(self) -> List[str]:
        return [raw["_call"][1] for raw in self.sent]


class FakeWeb3:
    def __init__(self, eth: Optional[FakeEth] = None, *, connected: bool = True) -> None:
        self.eth = eth or FakeEth()
        self._connected = connected

    async def is_connected(self) -> bool:
        return self._connected


class FakeAccount:
    def __init__(self, address: str) -> None:
        self.address = Web3.to_checksum_address(address)
        self.signed: List[Dict[str, Any]] = []

    def sign_transaction(self, tx: Dict[str, Any]) -> SimpleNamespace:
        self.signed.append(tx)
        return SimpleNamespace(raw_transaction=tx)
