"""Error taxonomy for settlement attempts."""

from __future__ import annotations

from typing import Any, Mapping, Optional


class SettlementError(Exception):
    """Base class for every fatal settlement failure.

    ``stage`` names the step that failed and ``context`` carries the amounts and
    addresses needed to diagnose the failure without re-running the attempt.
    """

    stage = "settlement"

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
        tx_hash: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage
        self.context = dict(context or {})
        self.tx_hash = tx_hash

    def __str__(self) -> str:
        parts = [self.message]
        if self.tx_hash:
            parts.append(f"tx={self.tx_hash}")
        if self.context:
            parts.append(", ".join(f"{key}={value}" for key, value in self.context.items()))
        return " | ".join(parts)


class ConfigurationError(SettlementError, ValueError):
    """Raised when configuration or a route request is invalid."""

    stage = "configuration"


class InsufficientBalance(SettlementError):
    """Raised when the sender cannot fund the transfer."""

    stage = "preflight"


class QuoteFailure(SettlementError):
    """Raised when the load-bearing hop cannot be priced."""

    stage = "quote"


class ApprovalFailure(SettlementError):
    """Raised when the allowance precondition cannot be established."""

    stage = "approval"


class SlippageViolation(SettlementError):
    """Raised when the expected output is already below the requested minimum."""

    stage = "slippage"


class SubmissionFailure(SettlementError):
    """Raised when the top-level transaction reverts or is rejected."""

    stage = "submission"


class MalformedCompose(SettlementError, ValueError):
    """Raised when a compose payload cannot be decoded exactly."""

    stage = "decode"


__all__ = [
    "ApprovalFailure",
    "ConfigurationError",
    "InsufficientBalance",
    "MalformedCompose",
    "QuoteFailure",
    "SettlementError",
    "SlippageViolation",
    "SubmissionFailure",
]
