"""NotificationSink protocol - renders notifications decided by the core."""

from __future__ import annotations

from typing import Protocol

from gmammoth.models.records import Notification


class NotificationSink(Protocol):
    """External rendering collaborator (toast, terminal, log...)."""

    def show(self, notification: Notification) -> None:
        ...
