"""Notification sinks for terminal and log output."""

from __future__ import annotations

import logging

import click

from gmammoth.models.records import Notification, NotificationKind

log = logging.getLogger(__name__)

_COLORS = {
    NotificationKind.SUCCESS: "green",
    NotificationKind.ERROR: "red",
    NotificationKind.MESSAGE: "yellow",
}


class ClickNotificationSink:
    """Prints notifications to the terminal. Durations are ignored."""

    def show(self, notification: Notification) -> None:
        prefix = f"{notification.icon} " if notification.icon else ""
        line = f"{prefix}{notification.title}"
        if notification.body:
            line += f" - {notification.body}"
        click.secho(
            line,
            fg=_COLORS.get(notification.kind),
            bold=notification.kind == NotificationKind.MESSAGE,
            err=notification.kind == NotificationKind.ERROR,
        )


class LoggingNotificationSink:
    """Writes notifications to the log, for headless use."""

    def show(self, notification: Notification) -> None:
        level = logging.WARNING if notification.kind == NotificationKind.ERROR else logging.INFO
        log.log(level, "[%s] %s %s", notification.kind.value, notification.title, notification.body)
