"""LedgerTransport protocol - the node/RPC boundary."""

from __future__ import annotations

from typing import Any, AsyncIterator, Protocol, Sequence

from gmammoth.models.events import ContractLog, EventCategory
from gmammoth.models.records import SimulationResult, TransactionReceipt


class LogStream(Protocol):
    """Cancellable async iterator of log batches for one event category."""

    def __aiter__(self) -> AsyncIterator[list[ContractLog]]:
        ...

    async def __anext__(self) -> list[ContractLog]:
        ...

    async def aclose(self) -> None:
        """Stop polling and release resources. Safe to call twice."""
        ...


class LedgerTransport(Protocol):
    """Reads, simulates, broadcasts and watches the gMammoth contract."""

    async def read_contract(self, function_name: str, args: Sequence[Any] = ()) -> Any:
        """Run a read-only call and return its decoded result."""
        ...

    async def simulate_call(
        self, function_name: str, caller: str, args: Sequence[Any] = ()
    ) -> SimulationResult:
        """Dry-run a state-changing call under the caller's account."""
        ...

    async def broadcast(self, signed_request: Any) -> str:
        """Submit a signed request for inclusion. Returns the transaction ID."""
        ...

    async def wait_for_finality(self, tx_id: str) -> TransactionReceipt:
        """Suspend until the transaction is final."""
        ...

    async def subscribe_to_logs(self, category: EventCategory) -> LogStream:
        """Open a log stream. Raises if the node cannot be reached."""
        ...
