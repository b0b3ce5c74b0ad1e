"""Multi-hop settlement of vault assets and shares across chains."""

from importlib import metadata

from vaultbridge.errors import SettlementError


def __getattr__(name: str) -> str:
    if name == "__version__":
        try:
            return metadata.version("vaultbridge")
        except metadata.PackageNotFoundError:
            return "0.0.0"
    raise AttributeError(name)


__all__ = ["SettlementError", "__version__"]
