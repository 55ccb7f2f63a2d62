"""Event subscription manager - one consumer task per contract log stream."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

from gmammoth.interfaces.transport import LedgerTransport, LogStream
from gmammoth.models.events import ContractLog, EventCategory

log = logging.getLogger(__name__)

Callback = Callable[..., Any]
SubscriptionKey = tuple[EventCategory, Optional[str], Hashable]


def _identity(callback: Callback) -> Hashable:
    """Stable identity for a callback, including re-fetched bound methods."""
    owner = getattr(callback, "__self__", None)
    if owner is not None:
        return (id(owner), getattr(callback, "__func__", None) or callback.__name__)
    return id(callback)


def message_parties(entry: ContractLog) -> tuple[str, str]:
    """Extract (sender, recipient) from a MessageDelivered log.

    Raises ValueError when the payload is not a ``{from, to}`` mapping of
    account strings.
    """
    args = entry.args
    if not isinstance(args, Mapping):
        raise ValueError(f"expected a mapping payload, got {type(args).__name__}")
    sender = args.get("from")
    recipient = args.get("to")
    if not isinstance(sender, str) or not isinstance(recipient, str):
        raise ValueError(f"malformed from/to in payload: {args!r}")
    return sender, recipient


@dataclass(eq=False)
class _Subscription:
    key: SubscriptionKey
    category: EventCategory
    recipient: str | None
    callback: Callback
    stream: LogStream
    task: asyncio.Task | None = None
    closed: bool = False
    stream_closed: bool = False


class CancelHandle:
    """Cancels one subscription. Idempotent, both sync and async.

    ``handle()`` stops further callbacks immediately; ``await handle.aclose()``
    additionally waits for the consumer task to finish.
    """

    def __init__(
        self,
        subscription: _Subscription | None = None,
        manager: EventSubscriptionManager | None = None,
    ) -> None:
        self._sub = subscription
        self._manager = manager

    @classmethod
    def noop(cls) -> CancelHandle:
        return cls()

    @property
    def active(self) -> bool:
        return self._sub is not None and not self._sub.closed

    def __call__(self) -> None:
        sub = self._sub
        if sub is None or sub.closed:
            return
        sub.closed = True
        if self._manager is not None:
            self._manager._forget(sub)
        if sub.task is not None and sub.task is not asyncio.current_task():
            sub.task.cancel()
        log.debug("Closed %s subscription", sub.category.value)

    async def aclose(self) -> None:
        self()
        task = self._sub.task if self._sub is not None else None
        if task is not None and task is not asyncio.current_task() and not task.done():
            await asyncio.wait({task})
        if self._sub is not None and self._manager is not None:
            await self._manager._release(self._sub)


class EventSubscriptionManager:
    """Opens and tears down subscriptions to the contract's event streams.

    Each subscription is identified by (category, recipient, callback).
    Opening an identity that is already active replaces the old subscription,
    so re-entering the owning scope never stacks duplicates.

    Opening never raises on transport failure: the error is logged and a
    no-op handle is returned.
    """

    def __init__(self, transport: LedgerTransport) -> None:
        self._transport = transport
        self._subs: dict[SubscriptionKey, _Subscription] = {}
        self._releases: set[asyncio.Task] = set()

    @property
    def active_count(self) -> int:
        return len(self._subs)

    def is_active(
        self, category: EventCategory, callback: Callback, recipient: str | None = None
    ) -> bool:
        return self._key(category, callback, recipient) in self._subs

    async def open(
        self,
        category: EventCategory,
        callback: Callback,
        recipient: str | None = None,
    ) -> CancelHandle:
        """Subscribe ``callback`` to ``category``.

        MESSAGE_DELIVERED requires ``recipient``; matching logs call
        ``callback(sender)``. Other categories call ``callback()`` per log.
        """
        if category is EventCategory.MESSAGE_DELIVERED:
            if not recipient:
                raise ValueError("MESSAGE_DELIVERED subscriptions need a recipient")
        else:
            recipient = None

        key = self._key(category, callback, recipient)

        try:
            stream = await self._transport.subscribe_to_logs(category)
        except Exception as exc:
            log.error("Could not open %s subscription: %s", category.value, exc)
            return CancelHandle.noop()

        previous = self._subs.get(key)
        if previous is not None:
            log.debug("Replacing existing %s subscription", category.value)
            CancelHandle(previous, self)()

        sub = _Subscription(
            key=key,
            category=category,
            recipient=recipient,
            callback=callback,
            stream=stream,
        )
        self._subs[key] = sub
        sub.task = asyncio.create_task(
            self._consume(sub), name=f"gmammoth-sub-{category.value}",
        )
        sub.task.add_done_callback(lambda _: self._release_soon(sub))
        log.info(
            "Subscribed to %s%s",
            category.value,
            f" for {recipient[:16]}" if recipient else "",
        )
        return CancelHandle(sub, self)

    async def close_all(self) -> None:
        """Close every subscription opened through this manager."""
        subs = list(self._subs.values())
        for sub in subs:
            await CancelHandle(sub, self).aclose()

    # ── Internals ──────────────────────────────────────────

    @staticmethod
    def _key(
        category: EventCategory, callback: Callback, recipient: str | None
    ) -> SubscriptionKey:
        return (category, recipient.lower() if recipient else None, _identity(callback))

    def _forget(self, sub: _Subscription) -> None:
        if self._subs.get(sub.key) is sub:
            del self._subs[sub.key]

    async def _consume(self, sub: _Subscription) -> None:
        try:
            async for batch in sub.stream:
                if sub.closed:
                    break
                for entry in batch:
                    if sub.closed:
                        break
                    try:
                        await self._dispatch(sub, entry)
                    except Exception as exc:
                        log.warning(
                            "Failed to process %s log %s: %s",
                            sub.category.value, entry.event_id or "?", exc,
                        )
        except Exception as exc:
            log.error("%s subscription ended: %s", sub.category.value, exc)
        finally:
            sub.closed = True
            self._forget(sub)
            await self._release(sub)

    async def _release(self, sub: _Subscription) -> None:
        if sub.stream_closed:
            return
        sub.stream_closed = True
        try:
            await sub.stream.aclose()
        except Exception as exc:
            log.debug("Closing %s stream failed: %s", sub.category.value, exc)

    def _release_soon(self, sub: _Subscription) -> None:
        # A task cancelled before its first step never runs its finally block
        if not sub.stream_closed:
            task = asyncio.ensure_future(self._release(sub))
            self._releases.add(task)
            task.add_done_callback(self._releases.discard)

    async def _dispatch(self, sub: _Subscription, entry: ContractLog) -> None:
        if sub.category is EventCategory.MESSAGE_DELIVERED:
            sender, recipient = message_parties(entry)
            if recipient.lower() != sub.recipient.lower():
                return
            result = sub.callback(sender)
        else:
            result = sub.callback()
        if inspect.isawaitable(result):
            await result
