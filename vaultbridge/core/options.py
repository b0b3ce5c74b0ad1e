"""LayerZero executor options (type 3) encoding."""

from __future__ import annotations

from typing import List

TYPE_3 = 3
EXECUTOR_WORKER_ID = 1
OPTION_TYPE_LZRECEIVE = 1
OPTION_TYPE_LZCOMPOSE = 3


def _uint(value: int, size: int, *, name: str) -> bytes:
    limit = 2 ** (size * 8) - 1
    if value < 0 or value > limit:
        raise ValueError(f"{name} out of range for uint{size * 8}: {value}")
    return value.to_bytes(size, "big")


class ExecutorOptions:
    """Builder for the packed options attached to a send.

    Each option is ``worker_id(1) | size(2) | option_type(1) | params`` where
    ``size`` counts the option type byte plus the params. Value fields are only
    packed when non-zero.
    """

    def __init__(self) -> None:
        self._options: List[bytes] = []

    def _add(self, option_type: int, params: bytes) -> "ExecutorOptions":
        size = _uint(len(params) + 1, 2, name="option size")
        self._options.append(bytes([EXECUTOR_WORKER_ID]) + size + bytes([option_type]) + params)
        return self

    def add_lz_receive(self, gas: int, value: int = 0) -> "ExecutorOptions":
        params = _uint(gas, 16, name="gas")
        if value:
            params += _uint(value, 16, name="value")
        return self._add(OPTION_TYPE_LZRECEIVE, params)

    def add_lz_compose(self, index: int, gas: int, value: int = 0) -> "ExecutorOptions":
        params = _uint(index, 2, name="index") + _uint(gas, 16, name="gas")
        if value:
            params += _uint(value, 16, name="value")
        return self._add(OPTION_TYPE_LZCOMPOSE, params)

    def to_bytes(self) -> bytes:
        return TYPE_3.to_bytes(2, "big") + b"".join(self._options)

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()


def lz_receive_options(gas: int, value: int = 0) -> bytes:
    return ExecutorOptions().add_lz_receive(gas, value).to_bytes()


def lz_compose_options(gas: int, value: int = 0, *, index: int = 0) -> bytes:
    return ExecutorOptions().add_lz_compose(index, gas, value).to_bytes()


__all__ = ["ExecutorOptions", "lz_compose_options", "lz_receive_options"]
