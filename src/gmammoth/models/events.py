"""Contract event models delivered by the transport's log stream."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class EventCategory(str, Enum):
    """Event categories emitted by the gMammoth contract."""

    REGISTRATION = "registration"
    DEREGISTRATION = "deregistration"
    MESSAGE_DELIVERED = "message_delivered"


@dataclass(frozen=True)
class ContractLog:
    """One raw log entry as decoded by the transport.

    ``args`` is whatever the transport could decode from the event value.
    For MESSAGE_DELIVERED it should be a mapping with ``from`` and ``to``
    account IDs, but nothing upstream guarantees that.
    """

    category: EventCategory
    args: Any = None
    ledger_sequence: int = 0
    event_id: str = ""
    tx_hash: str | None = None

