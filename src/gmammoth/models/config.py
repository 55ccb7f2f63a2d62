"""Configuration models for the client."""

from __future__ import annotations

from dataclasses import dataclass

NETWORK_PASSPHRASES = {
    "testnet": "Test SDF Network ; September 2015",
    "futurenet": "Test SDF Future Network ; October 2022",
    "mainnet": "Public Global Stellar Network ; September 2015",
}


@dataclass
class ClientConfig:
    """Complete client configuration."""

    # Client
    log_level: str = "info"
    poll_interval: float = 2.0  # seconds between get_events polls
    confirm_timeout: float = 60.0  # seconds to wait for finality
    confirm_poll_interval: float = 1.0

    # Stellar
    network: str = "testnet"
    rpc_url: str = "https://soroban-testnet.stellar.org"
    network_passphrase: str = ""
    contract_id: str = ""  # gMammoth contract ID
    keypair_secret: str = ""  # loaded from env var GMAMMOTH_SECRET
    base_fee: int = 100  # stroops
    tx_timeout: int = 300  # seconds, transaction time bounds
    retry_count: int = 3  # transient RPC failures
    retry_delay: float = 1.0
    friendbot_url: str = "https://friendbot.stellar.org"

    # Notifications
    toast_duration_ms: int = 3000
    message_duration_ms: int = 5000

    @property
    def passphrase(self) -> str:
        return self.network_passphrase or NETWORK_PASSPHRASES.get(self.network, "")
