"""Core settlement logic: routing, hop construction, quoting and submission."""

from .builder import Route, build_route
from .codec import HopInstruction, decode_compose, encode_compose
from .direct import DirectConversion, DirectOutcome
from .quotes import FeeQuote, FeeQuoter
from .route import Conversion, RoutePlan, plan_route
from .scan import fetch_message_status, scan_url
from .settlement import SettlementAttempt, SettlementOutcome, SettlementState, connect
from .slippage import apply_slippage, resolve_min_amount

__all__ = [
    "Conversion",
    "DirectConversion",
    "DirectOutcome",
    "FeeQuote",
    "FeeQuoter",
    "HopInstruction",
    "Route",
    "RoutePlan",
    "SettlementAttempt",
    "SettlementOutcome",
    "SettlementState",
    "apply_slippage",
    "build_route",
    "connect",
    "decode_compose",
    "encode_compose",
    "fetch_message_status",
    "plan_route",
    "resolve_min_amount",
    "scan_url",
]
