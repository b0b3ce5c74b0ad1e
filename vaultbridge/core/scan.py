"""LayerZero Scan lookups for submitted settlements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import requests

from vaultbridge.config import SettlementConfig
from vaultbridge.core.utils import get_logger, to_hex

LOGGER = get_logger("vaultbridge.scan")


@dataclass(frozen=True)
class MessageStatus:
    """Delivery status of one cross-chain message."""

    guid: Optional[str]
    status: str
    src_eid: Optional[int]
    dst_eid: Optional[int]
    src_tx_hash: Optional[str]
    dst_tx_hash: Optional[str]

    @property
    def delivered(self) -> bool:
        return self.status == "DELIVERED"


def scan_url(tx_hash: str, base: str) -> str:
    """Explorer link for the source transaction."""
    return f"{base.rstrip('/')}/tx/{to_hex(tx_hash)}"


def _int_or_none(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


def _parse_message(item: Mapping[str, Any]) -> MessageStatus:
    pathway = item.get("pathway") or {}
    source = item.get("source") or {}
    destination = item.get("destination") or {}
    status = item.get("status") or {}
    return MessageStatus(
        guid=item.get("guid"),
        status=str(status.get("name", "UNKNOWN")),
        src_eid=_int_or_none(pathway.get("srcEid")),
        dst_eid=_int_or_none(pathway.get("dstEid")),
        src_tx_hash=(source.get("tx") or {}).get("txHash"),
        dst_tx_hash=(destination.get("tx") or {}).get("txHash"),
    )


def fetch_message_status(tx_hash: str, config: SettlementConfig) -> List[MessageStatus]:
    """Return the messages emitted by ``tx_hash`` as indexed by LayerZero Scan."""
    url = f"{config.api_urls.layerzero_scan}/messages/tx/{to_hex(tx_hash)}"
    try:
        response = requests.get(url, timeout=config.defaults.api_timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise ConnectionError(f"Failed to fetch message status from {url}: {exc}") from exc

    payload: Dict[str, Any] = response.json()
    data = payload.get("data")
    if not isinstance(data, list):
        raise ValueError("LayerZero Scan response missing message list")

    messages = [_parse_message(item) for item in data]
    for message in messages:
        LOGGER.info(
            "Message %s: %s (eid %s -> %s) dstTx=%s",
            message.guid,
            message.status,
            message.src_eid,
            message.dst_eid,
            message.dst_tx_hash,
        )
    return messages


__all__ = ["MessageStatus", "fetch_message_status", "scan_url"]
