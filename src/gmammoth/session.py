"""Client session - wires every component for one connected account."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from gmammoth.events.subscriptions import CancelHandle, EventSubscriptionManager
from gmammoth.interfaces.notifier import NotificationSink
from gmammoth.interfaces.transport import LedgerTransport
from gmammoth.interfaces.wallet import SigningWallet
from gmammoth.models.config import ClientConfig
from gmammoth.models.events import EventCategory
from gmammoth.models.records import TransactionReceipt
from gmammoth.notify.dispatcher import DEFAULT_MESSAGE_DURATION_MS, NotificationDispatcher
from gmammoth.registry.status import RegistrationStatusCache
from gmammoth.registry.wallets import RegisteredWallets
from gmammoth.stellar.contract import FN_DEREGISTER, FN_REGISTER, FN_SEND_GMAMMOTH
from gmammoth.stellar.transport import SorobanTransport
from gmammoth.stellar.wallet import KeypairWallet
from gmammoth.tx.submitter import DEFAULT_TOAST_DURATION_MS, TransactionSubmitter

log = logging.getLogger(__name__)


class ViewState(str, Enum):
    """What the client should present."""

    DISCONNECTED = "disconnected"
    LOADING = "loading"
    NEEDS_REGISTRATION = "needs_registration"
    READY = "ready"


class GMammothSession:
    """Owns the subscriptions, caches and submitter for one wallet connection.

    On connect it reads the account's registration status and the registered
    wallet list, keeps both fresh from registry events, and listens for
    incoming gMammoths while the account is registered. connect() and
    disconnect() are both safe to call repeatedly.
    """

    def __init__(
        self,
        transport: LedgerTransport,
        wallet: SigningWallet | None,
        notifier: NotificationSink,
        toast_duration_ms: int = DEFAULT_TOAST_DURATION_MS,
        message_duration_ms: int = DEFAULT_MESSAGE_DURATION_MS,
    ) -> None:
        self._transport = transport
        self._wallet = wallet
        self.subscriptions = EventSubscriptionManager(transport)
        self.submitter = TransactionSubmitter(transport, wallet, notifier, toast_duration_ms)
        self.dispatcher = NotificationDispatcher(notifier, message_duration_ms)
        self.wallets = RegisteredWallets(transport, self.subscriptions)
        self.status: RegistrationStatusCache | None = None
        self._account: str | None = None
        self._message_handle: CancelHandle | None = None
        self._listen_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, cfg: ClientConfig, notifier: NotificationSink) -> GMammothSession:
        return cls(
            transport=SorobanTransport.from_config(cfg),
            wallet=KeypairWallet.from_secret(cfg.keypair_secret),
            notifier=notifier,
            toast_duration_ms=cfg.toast_duration_ms,
            message_duration_ms=cfg.message_duration_ms,
        )

    # ── State ──────────────────────────────────────────────

    @property
    def transport(self) -> LedgerTransport:
        return self._transport

    @property
    def account(self) -> str | None:
        return self._account

    @property
    def is_registered(self) -> bool:
        return self.status is not None and self.status.current_status()

    @property
    def registered_wallets(self) -> list[str]:
        return self.wallets.wallets

    @property
    def listening(self) -> bool:
        return self._message_handle is not None and self._message_handle.active

    @property
    def view(self) -> ViewState:
        if self._account is None or self.status is None:
            return ViewState.DISCONNECTED
        if not self.status.loaded:
            return ViewState.LOADING
        if not self.status.current_status():
            return ViewState.NEEDS_REGISTRATION
        return ViewState.READY

    # ── Connection transitions ─────────────────────────────

    async def connect(self) -> str | None:
        """Attach to the wallet's active account. Returns it, or None."""
        if self._account is not None:
            return self._account
        if self._wallet is None:
            log.info("No wallet configured")
            return None
        accounts = await self._wallet.get_addresses()
        if not accounts:
            log.info("Wallet has no active account")
            return None

        account = accounts[0]
        self._account = account
        self.status = RegistrationStatusCache(
            self._transport, self.subscriptions, account, on_change=self._on_status_change,
        )
        log.info("Connected as %s", account[:16])
        await asyncio.gather(self.status.start(), self.wallets.start())
        return account

    async def disconnect(self) -> None:
        if self._account is None:
            return
        account, self._account = self._account, None
        status, self.status = self.status, None
        log.info("Disconnecting %s", account[:16])
        async with self._listen_lock:
            await self._close_message_subscription()
        if status is not None:
            await status.close()
        await self.wallets.close()
        await self.subscriptions.close_all()

    async def aclose(self) -> None:
        """Disconnect and release the transport."""
        await self.disconnect()
        close = getattr(self._transport, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> GMammothSession:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    # ── Actions ────────────────────────────────────────────

    async def refresh(self) -> bool:
        """Manual refresh of status and wallet list."""
        if self.status is None:
            return False
        registered, _ = await asyncio.gather(self.status.refresh(), self.wallets.refresh())
        return registered

    async def register(self) -> TransactionReceipt:
        return await self.submitter.submit(FN_REGISTER, caller=self._account)

    async def deregister(self) -> TransactionReceipt:
        return await self.submitter.submit(FN_DEREGISTER, caller=self._account)

    async def send_gmammoth(self, to_address: str) -> TransactionReceipt:
        return await self.submitter.submit(FN_SEND_GMAMMOTH, [to_address], caller=self._account)

    # ── Internals ──────────────────────────────────────────

    def _is_current(self, account: str) -> bool:
        return self._account is not None and account.lower() == self._account.lower()

    async def _on_status_change(self, account: str, registered: bool) -> None:
        # Serialized; acts on the latest observed status, not the one passed in
        async with self._listen_lock:
            if not self._is_current(account):
                return
            if not self.is_registered:
                await self._close_message_subscription()
                return
            if self.listening:
                return
            handle = await self.subscriptions.open(
                EventCategory.MESSAGE_DELIVERED,
                self.dispatcher.on_message_delivered,
                recipient=account,
            )
            if self._is_current(account) and self.is_registered:
                self._message_handle = handle
            else:
                log.debug("Status changed while opening message subscription for %s", account[:16])
                await handle.aclose()

    async def _close_message_subscription(self) -> None:
        handle, self._message_handle = self._message_handle, None
        if handle is not None:
            await handle.aclose()
