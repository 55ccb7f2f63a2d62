"""Live Stellar testnet fixtures.

Skipped unless the RPC is healthy and GMAMMOTH_CONTRACT_ID names a deployed
gMammoth contract. Accounts are funded through Friendbot.
"""

from __future__ import annotations

import os

import httpx
import pytest
from stellar_sdk import Keypair

from gmammoth.models.config import NETWORK_PASSPHRASES
from gmammoth.stellar.transport import SorobanTransport

RPC_URL = "https://soroban-testnet.stellar.org"
FRIENDBOT_URL = "https://friendbot.stellar.org"

TESTNET_CONTRACT_ID = os.environ.get("GMAMMOTH_CONTRACT_ID", "")


@pytest.fixture(scope="session")
def testnet_reachable():
    """Gate: skip all testnet tests if the RPC or contract is unavailable."""
    if not TESTNET_CONTRACT_ID:
        pytest.skip("GMAMMOTH_CONTRACT_ID not set")
    try:
        r = httpx.post(
            RPC_URL,
            json={"jsonrpc": "2.0", "id": 1, "method": "getHealth"},
            timeout=10,
        )
        data = r.json()
        if data.get("result", {}).get("status") == "healthy":
            return True
        pytest.skip(f"Stellar testnet RPC not healthy: {data}")
    except (httpx.ConnectError, httpx.TimeoutException) as exc:
        pytest.skip(f"Stellar testnet RPC unreachable: {exc}")


@pytest.fixture(scope="session")
def funded_keypair(testnet_reachable):
    """A fresh account funded via Friendbot."""
    kp = Keypair.random()
    try:
        r = httpx.get(FRIENDBOT_URL, params={"addr": kp.public_key}, timeout=30)
    except (httpx.ConnectError, httpx.TimeoutException) as exc:
        pytest.skip(f"Friendbot unreachable: {exc}")
    if r.status_code != 200:
        pytest.skip(f"Friendbot returned {r.status_code} for {kp.public_key}")
    return kp


@pytest.fixture
async def testnet_transport(testnet_reachable):
    transport = SorobanTransport(
        contract_id=TESTNET_CONTRACT_ID,
        rpc_url=RPC_URL,
        network_passphrase=NETWORK_PASSPHRASES["testnet"],
        poll_interval=2.0,
        confirm_timeout=60.0,
    )
    yield transport
    await transport.close()
