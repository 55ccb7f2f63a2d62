"""Transaction submitter: simulate → sign → broadcast → confirm."""

from __future__ import annotations

import asyncio

import pytest

from gmammoth.exceptions import (
    BroadcastError,
    ConfirmationTimeoutError,
    SimulationError,
    SubmissionError,
)
from gmammoth.models.records import ErrorKind, NotificationKind
from gmammoth.tx.submitter import TransactionSubmitter

from tests.conftest import ALICE, BOB, eventually
from tests.mocks import FakeWallet, RecordingSink


# ── Happy path ────────────────────────────────────────────────────


async def test_register_success_order_and_notification(submitter, ledger, sink):
    receipt = await submitter.register()

    names = [c[0] for c in ledger.calls]
    assert names == ["simulate", "sign", "broadcast", "wait"]
    assert ledger.calls[0] == ("simulate", "register", ALICE)
    assert receipt.tx_id == ledger.calls[-1][1]
    assert receipt.function_name == "register"

    assert len(sink.notifications) == 1
    note = sink.notifications[0]
    assert note.kind is NotificationKind.SUCCESS
    assert note.title == "Successfully registered!"
    assert note.duration_ms == 3000


async def test_send_gmammoth_passes_recipient(submitter, ledger):
    await submitter.send_gmammoth(BOB)
    assert ledger.calls[0] == ("simulate", "send_gmammoth", ALICE)


async def test_explicit_caller_matches_case_insensitively(submitter, ledger):
    await submitter.submit("register", caller=ALICE.lower())
    assert ledger.calls[0] == ("simulate", "register", ALICE)


# ── Wallet preconditions ─────────────────────────────────────────


async def test_no_wallet_fails_without_transport_calls(ledger, sink):
    submitter = TransactionSubmitter(ledger, None, sink)

    with pytest.raises(SubmissionError) as info:
        await submitter.register()

    assert info.value.classified.kind is ErrorKind.WALLET_NOT_CONNECTED
    assert ledger.calls == []
    assert len(sink.notifications) == 1
    assert sink.notifications[0].kind is NotificationKind.ERROR


async def test_no_active_account_fails_without_transport_calls(ledger, sink):
    submitter = TransactionSubmitter(ledger, FakeWallet([], calls=ledger.calls), sink)

    with pytest.raises(SubmissionError) as info:
        await submitter.send_gmammoth(BOB)

    assert info.value.classified.kind is ErrorKind.WALLET_NOT_CONNECTED
    assert ledger.calls == []


async def test_unknown_caller_is_not_connected(submitter, ledger):
    with pytest.raises(SubmissionError) as info:
        await submitter.submit("register", caller=BOB)
    assert info.value.classified.kind is ErrorKind.WALLET_NOT_CONNECTED
    assert ledger.calls == []


# ── Failures at each step ────────────────────────────────────────


async def test_simulation_failure_never_broadcasts(submitter, ledger, sink):
    original = SimulationError("Simulation failed for register: already registered")
    ledger.fail_simulate = original

    with pytest.raises(SubmissionError) as info:
        await submitter.register()

    assert info.value.classified.kind is ErrorKind.SIMULATION_FAILED
    assert info.value.__cause__ is original
    assert ledger.calls_named("broadcast") == []
    assert ledger.calls_named("sign") == []
    assert [n.kind for n in sink.notifications] == [NotificationKind.ERROR]
    assert sink.notifications[0].title == "Failed to register. Please try again."


async def test_signing_rejection_is_user_rejected(ledger, sink):
    wallet = FakeWallet([ALICE], calls=ledger.calls, reject=True)
    submitter = TransactionSubmitter(ledger, wallet, sink)

    with pytest.raises(SubmissionError) as info:
        await submitter.deregister()

    assert info.value.classified.kind is ErrorKind.USER_REJECTED
    assert ledger.calls_named("broadcast") == []
    assert len(sink.notifications) == 1


async def test_broadcast_failure_classified(submitter, ledger, sink):
    ledger.fail_broadcast = BroadcastError("tx_insufficient_fee")

    with pytest.raises(SubmissionError) as info:
        await submitter.register()

    assert info.value.classified.kind is ErrorKind.UNKNOWN
    assert info.value.classified.detail == "tx_insufficient_fee"
    assert ledger.calls_named("wait") == []
    assert len(sink.notifications) == 1


async def test_confirmation_timeout_is_network_error(submitter, ledger, sink):
    ledger.fail_confirm = ConfirmationTimeoutError("not final after 60s")

    with pytest.raises(SubmissionError) as info:
        await submitter.register()

    assert info.value.classified.kind is ErrorKind.NETWORK_ERROR
    assert len(ledger.calls_named("broadcast")) == 1
    assert [n.kind for n in sink.notifications] == [NotificationKind.ERROR]


async def test_failing_sink_does_not_mask_result(ledger, wallet):
    submitter = TransactionSubmitter(ledger, wallet, RecordingSink(fail=True))
    receipt = await submitter.register()
    assert receipt.tx_id


# ── Cancellation ─────────────────────────────────────────────────


async def test_cancel_during_confirm_stops_wait_without_notification(submitter, ledger, sink):
    ledger.confirm_gate = asyncio.Event()
    task = asyncio.create_task(submitter.register())

    await eventually(lambda: ledger.calls_named("wait"))
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    ledger.confirm_gate.set()
    await asyncio.sleep(0.01)
    assert sink.notifications == []
    # Broadcast already happened; the state change may still land
    assert len(ledger.calls_named("broadcast")) == 1
