"""Register, message and deregister against the deployed contract."""

from __future__ import annotations

import pytest

from gmammoth.session import GMammothSession, ViewState
from gmammoth.stellar.contract import FN_GET_REGISTERED_USERS
from gmammoth.stellar.wallet import KeypairWallet

from tests.conftest import eventually
from tests.mocks import RecordingSink

pytestmark = pytest.mark.testnet


async def test_registered_users_readable(testnet_transport):
    users = await testnet_transport.read_contract(FN_GET_REGISTERED_USERS)
    assert isinstance(users, list)
    assert all(isinstance(u, str) for u in users)


async def test_register_send_deregister(testnet_transport, funded_keypair):
    sink = RecordingSink()
    session = GMammothSession(testnet_transport, KeypairWallet(funded_keypair), sink)
    account = funded_keypair.public_key
    try:
        await session.connect()
        assert session.view is ViewState.NEEDS_REGISTRATION

        await session.register()
        await eventually(lambda: session.is_registered, timeout=60)
        await eventually(lambda: session.listening, timeout=60)

        # A gMammoth to ourselves exercises the recipient filter end to end
        await session.send_gmammoth(account)
        await eventually(lambda: session.dispatcher.delivered >= 1, timeout=60)
        assert any(n.body == account for n in sink.notifications)

        await session.deregister()
        await eventually(lambda: not session.is_registered, timeout=60)
    finally:
        await session.disconnect()
