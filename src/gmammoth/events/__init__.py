"""Contract event subscriptions."""

from gmammoth.events.subscriptions import CancelHandle, EventSubscriptionManager

__all__ = ["CancelHandle", "EventSubscriptionManager"]
