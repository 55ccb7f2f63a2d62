"""Transaction submitter - simulate, sign, broadcast, confirm."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from gmammoth.exceptions import SubmissionError, WalletNotConnectedError
from gmammoth.interfaces.notifier import NotificationSink
from gmammoth.interfaces.transport import LedgerTransport
from gmammoth.interfaces.wallet import SigningWallet
from gmammoth.models.records import (
    ClassifiedError,
    ErrorKind,
    Notification,
    NotificationKind,
    PendingTransaction,
    TransactionReceipt,
    TxState,
)
from gmammoth.stellar.contract import FN_DEREGISTER, FN_REGISTER, FN_SEND_GMAMMOTH
from gmammoth.tx.classifier import classify

log = logging.getLogger(__name__)

DEFAULT_TOAST_DURATION_MS = 3000

SUCCESS_MESSAGES = {
    FN_REGISTER: "Successfully registered!",
    FN_DEREGISTER: "Successfully deregistered!",
    FN_SEND_GMAMMOTH: "Successfully sent gMammoth!",
}

FAILURE_MESSAGES = {
    FN_REGISTER: "Failed to register. Please try again.",
    FN_DEREGISTER: "Failed to deregister. Please try again.",
    FN_SEND_GMAMMOTH: "Failed to send gMammoth. Please try again.",
}

_KIND_TITLES = {
    ErrorKind.USER_REJECTED: "Transaction rejected in wallet",
    ErrorKind.WALLET_NOT_CONNECTED: "Wallet not connected",
    ErrorKind.NETWORK_ERROR: "Network error occurred",
}


class TransactionSubmitter:
    """Runs one state-changing contract call through its whole lifecycle.

    Every submit() produces exactly one notification: success after the
    transaction is final, or failure with the classified cause. Failures are
    also raised as SubmissionError (chained to the original exception) so the
    caller can reset its own progress state without re-classifying.

    Cancelling the awaiting task stops the local wait and suppresses the
    notification. A transaction already broadcast may still land.
    """

    def __init__(
        self,
        transport: LedgerTransport,
        wallet: SigningWallet | None,
        notifier: NotificationSink,
        toast_duration_ms: int = DEFAULT_TOAST_DURATION_MS,
    ) -> None:
        self._transport = transport
        self._wallet = wallet
        self._notifier = notifier
        self._toast_duration_ms = toast_duration_ms

    async def submit(
        self,
        function_name: str,
        args: Sequence[Any] = (),
        caller: str | None = None,
    ) -> TransactionReceipt:
        """Simulate, sign, broadcast and confirm ``function_name(*args)``."""
        pending = PendingTransaction(function_name=function_name, caller=caller or "", args=tuple(args))
        try:
            receipt = await self._run(pending)
        except Exception as exc:
            classified = classify(exc)
            pending.error = classified
            pending.advance(TxState.FAILED)
            log.error(
                "%s failed at %s for %s: %s",
                function_name, pending.history[-1].value,
                pending.caller[:16] or "?", classified,
            )
            self._notify_failure(function_name, classified)
            raise SubmissionError(classified, function_name) from exc

        self._notify(Notification(
            kind=NotificationKind.SUCCESS,
            title=SUCCESS_MESSAGES.get(function_name, f"{function_name} confirmed"),
            body=receipt.tx_id,
            duration_ms=self._toast_duration_ms,
        ))
        return receipt

    async def register(self) -> TransactionReceipt:
        return await self.submit(FN_REGISTER)

    async def deregister(self) -> TransactionReceipt:
        return await self.submit(FN_DEREGISTER)

    async def send_gmammoth(self, to_address: str) -> TransactionReceipt:
        return await self.submit(FN_SEND_GMAMMOTH, [to_address])

    async def _run(self, pending: PendingTransaction) -> TransactionReceipt:
        # 1. Resolve the caller; no wallet means no network traffic at all
        pending.caller = await self._resolve_caller(pending)

        # 2. Simulate
        try:
            pending.simulation = await self._transport.simulate_call(
                pending.function_name, pending.caller, pending.args,
            )
        except Exception as exc:
            pending.simulation_error = exc
            raise
        pending.advance(TxState.SIMULATED)
        log.debug("Simulated %s for %s", pending.function_name, pending.caller[:16])

        # 3. Sign and broadcast
        signed = await self._wallet.sign(pending.simulation.request)
        pending.tx_id = await self._transport.broadcast(signed)
        pending.advance(TxState.BROADCAST)
        log.info("Broadcast %s (tx=%s)", pending.function_name, pending.tx_id[:16])

        # 4. Confirm
        pending.receipt = await self._transport.wait_for_finality(pending.tx_id)
        pending.advance(TxState.CONFIRMED)
        log.info(
            "%s confirmed for %s (tx=%s, ledger=%s)",
            pending.function_name,
            pending.caller[:16],
            pending.tx_id[:16],
            pending.receipt.ledger_sequence,
        )
        if not pending.receipt.function_name:
            pending.receipt.function_name = pending.function_name
        return pending.receipt

    async def _resolve_caller(self, pending: PendingTransaction) -> str:
        if self._wallet is None:
            raise WalletNotConnectedError("Wallet not connected")
        accounts = await self._wallet.get_addresses()
        if not accounts:
            raise WalletNotConnectedError("Wallet not connected")
        if not pending.caller:
            return accounts[0]
        for account in accounts:
            if account.lower() == pending.caller.lower():
                return account
        raise WalletNotConnectedError(f"Account {pending.caller[:16]} is not connected")

    def _notify_failure(self, function_name: str, classified: ClassifiedError) -> None:
        title = _KIND_TITLES.get(
            classified.kind,
            FAILURE_MESSAGES.get(function_name, f"{function_name} failed. Please try again."),
        )
        self._notify(Notification(
            kind=NotificationKind.ERROR,
            title=title,
            body=classified.detail or "",
            duration_ms=self._toast_duration_ms,
        ))

    def _notify(self, notification: Notification) -> None:
        try:
            self._notifier.show(notification)
        except Exception as exc:
            log.warning("Notification sink failed: %s", exc)
