"""Notification dispatcher - announces incoming gMammoths."""

from __future__ import annotations

import logging

from gmammoth.interfaces.notifier import NotificationSink
from gmammoth.models.records import Notification, NotificationKind

log = logging.getLogger(__name__)

MESSAGE_TITLE = "gMammoth!"
MESSAGE_ICON = "🦣"
DEFAULT_MESSAGE_DURATION_MS = 5000


class NotificationDispatcher:
    """Turns accepted MessageDelivered logs into notifications.

    The subscription's recipient filter already restricts calls to logs
    addressed to the local account.
    """

    def __init__(
        self,
        sink: NotificationSink,
        duration_ms: int = DEFAULT_MESSAGE_DURATION_MS,
    ) -> None:
        self._sink = sink
        self._duration_ms = duration_ms
        self.delivered = 0

    def on_message_delivered(self, sender: str) -> Notification:
        notification = Notification(
            kind=NotificationKind.MESSAGE,
            title=MESSAGE_TITLE,
            body=sender,
            icon=MESSAGE_ICON,
            duration_ms=self._duration_ms,
        )
        self.delivered += 1
        log.info("gMammoth received from %s", sender[:16])
        try:
            self._sink.show(notification)
        except Exception as exc:
            log.warning("Notification sink failed: %s", exc)
        return notification
