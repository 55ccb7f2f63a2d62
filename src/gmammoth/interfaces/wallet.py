"""SigningWallet protocol - the signing capability boundary."""

from __future__ import annotations

from typing import Any, Protocol


class SigningWallet(Protocol):
    """Exposes the connected accounts and signs prepared requests."""

    async def get_addresses(self) -> list[str]:
        """Active accounts. Empty when the wallet is disconnected."""
        ...

    async def sign(self, request: Any) -> Any:
        """Sign a prepared request. Raises SigningRejectedError on refusal."""
        ...
