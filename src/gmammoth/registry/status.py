"""Registration status cache - observed is_registered() per account."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

from gmammoth.events.subscriptions import CancelHandle, EventSubscriptionManager
from gmammoth.interfaces.transport import LedgerTransport
from gmammoth.models.events import EventCategory
from gmammoth.stellar.contract import FN_IS_REGISTERED

log = logging.getLogger(__name__)

StatusListener = Callable[[str, bool], Any]


class RegistrationStatusCache:
    """Last observed registration status, kept fresh by contract events.

    start() reads the status once, then subscribes to Registration and
    Deregistration. Any such event refreshes every tracked account, whichever
    account the event was about: the registry is global and the client shows
    all of it.

    Reads are ticketed per account. A read only lands if no read issued
    after it has landed already, so a slow stale read can't overwrite a
    fresher value.
    """

    def __init__(
        self,
        transport: LedgerTransport,
        subscriptions: EventSubscriptionManager,
        account: str,
        on_change: StatusListener | None = None,
    ) -> None:
        self._transport = transport
        self._subscriptions = subscriptions
        self._account = account
        self._on_change = on_change
        self._accounts: dict[str, str] = {account.lower(): account}
        self._observed: dict[str, bool] = {}
        self._issued: dict[str, int] = {}
        self._applied: dict[str, int] = {}
        self._handles: list[CancelHandle] = []
        self._loaded = False

    @property
    def account(self) -> str:
        return self._account

    @property
    def loaded(self) -> bool:
        """True once the first read for the primary account has landed."""
        return self._loaded

    def current_status(self, account: str | None = None) -> bool:
        """Last observed status. False until a read has completed."""
        key = (account or self._account).lower()
        return self._observed.get(key, False)

    async def refresh(self, account: str | None = None) -> bool:
        """Read is_registered() from the contract and record the result."""
        account = account or self._account
        key = account.lower()
        self._accounts.setdefault(key, account)
        ticket = self._issued.get(key, 0) + 1
        self._issued[key] = ticket

        try:
            registered = bool(await self._transport.read_contract(FN_IS_REGISTERED, [account]))
        except Exception as exc:
            log.warning("is_registered(%s) failed: %s", account[:16], exc)
            return self._observed.get(key, False)

        if ticket < self._applied.get(key, 0):
            log.debug("Discarding stale is_registered read for %s", account[:16])
            return self._observed.get(key, False)

        self._applied[key] = ticket
        previous = self._observed.get(key)
        self._observed[key] = registered
        if key == self._account.lower():
            self._loaded = True

        if previous != registered:
            log.info("Registration status for %s: %s", account[:16], registered)
            if self._on_change is not None:
                result = self._on_change(account, registered)
                if inspect.isawaitable(result):
                    await result
        return registered

    async def start(self) -> bool:
        """Initial read, then subscribe to registry events."""
        registered = await self.refresh()
        for category in (EventCategory.REGISTRATION, EventCategory.DEREGISTRATION):
            self._handles.append(await self._subscriptions.open(category, self._on_registry_event))
        return registered

    async def close(self) -> None:
        handles, self._handles = self._handles, []
        for handle in handles:
            await handle.aclose()

    async def __aenter__(self) -> RegistrationStatusCache:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _on_registry_event(self) -> None:
        for account in list(self._accounts.values()):
            await self.refresh(account)
