"""Data models for the gmammoth client."""

from gmammoth.models.events import ContractLog, EventCategory
from gmammoth.models.records import (
    ClassifiedError,
    ErrorKind,
    Notification,
    NotificationKind,
    PendingTransaction,
    SimulationResult,
    TransactionReceipt,
    TxState,
)
from gmammoth.models.config import ClientConfig, NETWORK_PASSPHRASES

__all__ = [
    "ContractLog", "EventCategory",
    "ClassifiedError", "ErrorKind", "Notification", "NotificationKind",
    "PendingTransaction", "SimulationResult", "TransactionReceipt", "TxState",
    "ClientConfig", "NETWORK_PASSPHRASES",
]
