"""Keypair-backed signing wallet."""

from __future__ import annotations

import logging
from typing import Any

from stellar_sdk import Keypair, TransactionEnvelope

from gmammoth.exceptions import WalletNotConnectedError

log = logging.getLogger(__name__)


class KeypairWallet:
    """SigningWallet holding a single local keypair.

    A wallet built without a keypair behaves as disconnected: it reports no
    accounts and refuses to sign.
    """

    def __init__(self, keypair: Keypair | None = None) -> None:
        self._keypair = keypair

    @classmethod
    def from_secret(cls, secret: str) -> KeypairWallet:
        if not secret:
            return cls(None)
        return cls(Keypair.from_secret(secret))

    @property
    def connected(self) -> bool:
        return self._keypair is not None

    @property
    def public_key(self) -> str | None:
        return self._keypair.public_key if self._keypair else None

    def disconnect(self) -> None:
        self._keypair = None

    async def get_addresses(self) -> list[str]:
        if self._keypair is None:
            return []
        return [self._keypair.public_key]

    async def sign(self, request: Any) -> Any:
        if self._keypair is None:
            raise WalletNotConnectedError("Wallet not connected")
        if not isinstance(request, TransactionEnvelope):
            raise TypeError(f"Cannot sign {type(request).__name__}")
        request.sign(self._keypair)
        log.debug("Signed transaction as %s", self._keypair.public_key[:16])
        return request
