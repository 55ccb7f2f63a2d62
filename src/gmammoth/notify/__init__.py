"""User-facing notifications."""

from gmammoth.notify.dispatcher import NotificationDispatcher
from gmammoth.notify.sinks import ClickNotificationSink, LoggingNotificationSink

__all__ = ["NotificationDispatcher", "ClickNotificationSink", "LoggingNotificationSink"]
