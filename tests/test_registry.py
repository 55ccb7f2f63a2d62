"""Registration status cache and registered wallet list."""

from __future__ import annotations

import asyncio

from gmammoth.models.events import EventCategory
from gmammoth.registry.status import RegistrationStatusCache
from gmammoth.registry.wallets import RegisteredWallets

from tests.conftest import ALICE, BOB, eventually
from tests.factories import make_deregistration_log, make_registration_log


# ── Status cache ─────────────────────────────────────────────────


async def test_start_reads_then_subscribes(ledger, manager):
    ledger.registered = [ALICE]
    cache = RegistrationStatusCache(ledger, manager, ALICE)

    assert cache.current_status() is False
    assert not cache.loaded

    assert await cache.start() is True
    assert cache.current_status() is True
    assert cache.loaded
    assert ledger.calls[0] == ("read", "is_registered", (ALICE,))
    assert len(ledger.open_streams(EventCategory.REGISTRATION)) == 1
    assert len(ledger.open_streams(EventCategory.DEREGISTRATION)) == 1

    await cache.close()
    await cache.close()
    await eventually(lambda: not ledger.open_streams(EventCategory.REGISTRATION))
    assert not ledger.open_streams(EventCategory.DEREGISTRATION)


async def test_deregistration_of_other_account_still_refreshes(ledger, manager):
    ledger.registered = [ALICE, BOB]
    async with RegistrationStatusCache(ledger, manager, ALICE) as cache:
        assert cache.current_status() is True
        reads_before = len(ledger.calls_named("read"))

        # Node state changes for ALICE, but the event is about BOB
        ledger.registered = [BOB]
        ledger.emit(EventCategory.DEREGISTRATION, make_deregistration_log(BOB))

        await eventually(lambda: cache.current_status() is False)
        assert len(ledger.calls_named("read")) == reads_before + 1


async def test_registration_event_refreshes(ledger, manager):
    async with RegistrationStatusCache(ledger, manager, ALICE) as cache:
        assert cache.current_status() is False
        ledger.registered = [ALICE]
        ledger.emit(EventCategory.REGISTRATION, make_registration_log(ALICE))
        await eventually(lambda: cache.current_status() is True)


async def test_manual_refresh(ledger, manager):
    cache = RegistrationStatusCache(ledger, manager, ALICE)
    assert await cache.refresh() is False
    ledger.registered = [ALICE]
    assert await cache.refresh() is True
    assert cache.current_status(ALICE.lower()) is True


async def test_failed_read_keeps_previous_value(ledger, manager, caplog):
    ledger.registered = [ALICE]
    cache = RegistrationStatusCache(ledger, manager, ALICE)
    await cache.refresh()

    ledger.fail_read = ConnectionError("node unreachable")
    assert await cache.refresh() is True
    assert cache.current_status() is True
    assert "is_registered" in caplog.text


async def test_stale_read_does_not_overwrite_fresher_value(ledger, manager):
    cache = RegistrationStatusCache(ledger, manager, ALICE)
    slow_gate, fast_gate = asyncio.Event(), asyncio.Event()
    ledger.read_gates = [slow_gate, fast_gate]

    # First read snapshots "not registered" and stalls
    slow = asyncio.create_task(cache.refresh())
    await eventually(lambda: len(ledger.calls_named("read")) == 1)

    # Second read, issued after the state changed, completes first
    ledger.registered = [ALICE]
    fast = asyncio.create_task(cache.refresh())
    await eventually(lambda: len(ledger.calls_named("read")) == 2)
    fast_gate.set()
    assert await fast is True

    slow_gate.set()
    await slow
    assert cache.current_status() is True


async def test_on_change_fires_only_on_flip(ledger, manager):
    changes: list[tuple[str, bool]] = []
    cache = RegistrationStatusCache(
        ledger, manager, ALICE, on_change=lambda a, r: changes.append((a, r)),
    )
    await cache.refresh()
    await cache.refresh()
    ledger.registered = [ALICE]
    await cache.refresh()
    await cache.refresh()

    assert changes == [(ALICE, False), (ALICE, True)]


# ── Registered wallets ───────────────────────────────────────────


async def test_wallet_list_replaced_on_events(ledger, manager):
    ledger.registered = [ALICE]
    wallets = RegisteredWallets(ledger, manager)

    assert await wallets.start() == [ALICE]
    assert ALICE.lower() in wallets

    ledger.registered = [ALICE, BOB]
    ledger.emit(EventCategory.REGISTRATION, make_registration_log(BOB))
    await eventually(lambda: wallets.wallets == [ALICE, BOB])

    ledger.registered = [BOB]
    ledger.emit(EventCategory.DEREGISTRATION, make_deregistration_log(ALICE))
    await eventually(lambda: wallets.wallets == [BOB])
    assert ALICE not in wallets
    assert len(wallets) == 1

    await wallets.close()


async def test_wallet_list_kept_on_read_failure(ledger, manager):
    ledger.registered = [ALICE, BOB]
    wallets = RegisteredWallets(ledger, manager)
    await wallets.refresh()

    ledger.fail_read = ConnectionError("node unreachable")
    assert await wallets.refresh() == [ALICE, BOB]
