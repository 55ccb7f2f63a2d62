"""Registered wallet list, replaced wholesale on every registry event."""

from __future__ import annotations

import logging

from gmammoth.events.subscriptions import CancelHandle, EventSubscriptionManager
from gmammoth.interfaces.transport import LedgerTransport
from gmammoth.models.events import EventCategory
from gmammoth.stellar.contract import FN_GET_REGISTERED_USERS

log = logging.getLogger(__name__)


class RegisteredWallets:
    """Ordered list of registered accounts as last read from the contract."""

    def __init__(
        self,
        transport: LedgerTransport,
        subscriptions: EventSubscriptionManager,
    ) -> None:
        self._transport = transport
        self._subscriptions = subscriptions
        self._wallets: tuple[str, ...] = ()
        self._issued = 0
        self._applied = 0
        self._handles: list[CancelHandle] = []

    @property
    def wallets(self) -> list[str]:
        return list(self._wallets)

    def __contains__(self, account: object) -> bool:
        if not isinstance(account, str):
            return False
        return account.lower() in {w.lower() for w in self._wallets}

    def __len__(self) -> int:
        return len(self._wallets)

    async def refresh(self) -> list[str]:
        """Fetch get_registered_users(). Keeps the previous list on failure."""
        self._issued += 1
        ticket = self._issued
        try:
            raw = await self._transport.read_contract(FN_GET_REGISTERED_USERS)
        except Exception as exc:
            log.warning("get_registered_users failed: %s", exc)
            return self.wallets

        if ticket < self._applied:
            return self.wallets
        self._applied = ticket
        self._wallets = tuple(str(w) for w in (raw or ()))
        log.debug("Registered wallets: %d", len(self._wallets))
        return self.wallets

    async def start(self) -> list[str]:
        wallets = await self.refresh()
        for category in (EventCategory.REGISTRATION, EventCategory.DEREGISTRATION):
            self._handles.append(await self._subscriptions.open(category, self.refresh))
        return wallets

    async def close(self) -> None:
        handles, self._handles = self._handles, []
        for handle in handles:
            await handle.aclose()
