"""Shared fixtures for gmammoth tests."""

from __future__ import annotations

import asyncio

import pytest
from pytest_metadata.plugin import metadata_key

from gmammoth.events.subscriptions import EventSubscriptionManager
from gmammoth.models.config import ClientConfig
from gmammoth.tx.submitter import TransactionSubmitter

from tests.mocks import FakeLedger, FakeWallet, RecordingSink

TEST_SECRET = "SBWVJTD3F5ETMVWCNI7MM4HUAPUSCUXXMUEJZJTPRWRJGXW2BF4SVQTK"
TEST_PUBLIC = "GDNAG4KFFVF5HCSGRWZIXZNL2SR2KBGJSHW2A6FI6DZI62XF6IBLO4GD"

CONTRACT_ID = "CCEDYFIHUCJFITWEOT7BWUO2HBQQ72L244ZXQ4YNOC6FYRDN3MKDQFK7"

ALICE = "GAAALICEXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXX"
BOB = "GBBBOBXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXX"
CAROL = "GCCCAROLXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXX"
DAVE = "GDDDAVEXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXX"


def pytest_configure(config):
    """Add network info to the report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = "Stellar Testnet"
    meta["gMammoth Contract"] = CONTRACT_ID


async def eventually(predicate, timeout: float = 1.0) -> None:
    """Yield to the loop until ``predicate()`` holds, or fail after ``timeout``."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


def make_test_config(**overrides) -> ClientConfig:
    """Build a ClientConfig suitable for testing."""
    defaults = dict(
        network="testnet",
        rpc_url="https://soroban-testnet.stellar.org",
        contract_id=CONTRACT_ID,
        keypair_secret=TEST_SECRET,
        poll_interval=0.01,
        confirm_timeout=1.0,
        confirm_poll_interval=0.0,
        retry_count=2,
        retry_delay=0.0,
    )
    defaults.update(overrides)
    return ClientConfig(**defaults)


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def wallet(ledger):
    return FakeWallet([ALICE], calls=ledger.calls)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def submitter(ledger, wallet, sink):
    return TransactionSubmitter(ledger, wallet, sink, toast_duration_ms=3000)


@pytest.fixture
async def manager(ledger):
    m = EventSubscriptionManager(ledger)
    yield m
    await m.close_all()
