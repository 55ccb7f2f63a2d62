"""Protocol interfaces for gmammoth collaborators."""

from gmammoth.interfaces.transport import LedgerTransport, LogStream
from gmammoth.interfaces.wallet import SigningWallet
from gmammoth.interfaces.notifier import NotificationSink

__all__ = [
    "LedgerTransport", "LogStream",
    "SigningWallet",
    "NotificationSink",
]
