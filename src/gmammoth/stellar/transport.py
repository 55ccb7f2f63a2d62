"""Soroban RPC transport for the gMammoth contract."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence, TypeVar

import aiohttp
from stellar_sdk import Account, SorobanServerAsync, TransactionBuilder, xdr
from stellar_sdk.exceptions import ConnectionError as StellarConnectionError
from stellar_sdk.soroban_rpc import (
    EventFilter,
    EventFilterType,
    EventInfo,
    GetTransactionStatus,
    SendTransactionStatus,
)

from gmammoth.exceptions import (
    BroadcastError,
    ConfirmationError,
    ConfirmationTimeoutError,
    NetworkFailureError,
    SimulationError,
)
from gmammoth.models.config import ClientConfig
from gmammoth.models.events import ContractLog, EventCategory
from gmammoth.models.records import SimulationResult, TransactionReceipt
from gmammoth.stellar.contract import (
    TOPIC_XDR,
    category_for_topic,
    decode_topic,
    decode_value,
    encode_args,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

# Read-only calls are simulated from an all-zero account that never signs
READ_SOURCE_ACCOUNT = "GAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAWHF"

_TRANSIENT_ERRORS = (StellarConnectionError, aiohttp.ClientError, asyncio.TimeoutError)

EVENTS_PAGE_LIMIT = 100


def parse_event(info: EventInfo, expected: EventCategory) -> ContractLog | None:
    """Turn a raw EventInfo into a ContractLog.

    Returns None when the topic doesn't belong to ``expected``. An undecodable
    value still yields a log (with ``args=None``) so the consumer can report it.
    """
    if len(info.topic) < 1:
        return None

    try:
        category = category_for_topic(decode_topic(info.topic[0]))
    except Exception:
        log.debug("Could not decode topic[0] for event %s", info.id)
        return None
    if category is not expected:
        return None

    args: Any = None
    try:
        args = decode_value(xdr.SCVal.from_xdr(info.value))
    except Exception as exc:
        log.warning("Could not decode value XDR for event %s: %s", info.id, exc)

    return ContractLog(
        category=category,
        args=args,
        ledger_sequence=info.ledger,
        event_id=info.id,
        tx_hash=getattr(info, "transaction_hash", None),
    )


class SorobanLogStream:
    """Polls get_events for one event category, one batch per poll.

    Starts from the latest ledger seen when the stream was opened and pages
    forward with the RPC cursor.
    """

    def __init__(
        self,
        transport: SorobanTransport,
        category: EventCategory,
        start_ledger: int,
        poll_interval: float,
    ) -> None:
        self._transport = transport
        self._category = category
        self._start_ledger = start_ledger
        self._poll_interval = poll_interval
        self._cursor: str | None = None
        self._first = True
        self._closed = False
        self._filters = [
            EventFilter(
                event_type=EventFilterType.CONTRACT,
                contract_ids=[transport.contract_id],
                topics=[[TOPIC_XDR[category]]],
            )
        ]

    def __aiter__(self) -> SorobanLogStream:
        return self

    async def __anext__(self) -> list[ContractLog]:
        if self._closed:
            raise StopAsyncIteration
        if not self._first:
            await asyncio.sleep(self._poll_interval)
        self._first = False
        if self._closed:
            raise StopAsyncIteration
        return await self._poll()

    async def aclose(self) -> None:
        self._closed = True

    async def _poll(self) -> list[ContractLog]:
        server = self._transport.server
        if self._cursor:
            response = await self._transport.with_retry(
                "get_events",
                lambda: server.get_events(
                    filters=self._filters, cursor=self._cursor, limit=EVENTS_PAGE_LIMIT,
                ),
            )
        else:
            response = await self._transport.with_retry(
                "get_events",
                lambda: server.get_events(
                    start_ledger=self._start_ledger, filters=self._filters, limit=EVENTS_PAGE_LIMIT,
                ),
            )

        batch: list[ContractLog] = []
        for info in response.events:
            if not getattr(info, "in_successful_contract_call", True):
                continue
            parsed = parse_event(info, self._category)
            if parsed is not None:
                batch.append(parsed)

        if response.events:
            self._cursor = response.events[-1].id
        elif getattr(response, "cursor", None):
            self._cursor = response.cursor
        else:
            self._start_ledger = max(self._start_ledger, response.latest_ledger)

        if batch:
            log.debug(
                "Polled %d %s events (cursor: %s)",
                len(batch), self._category.value, self._cursor,
            )
        return batch


class SorobanTransport:
    """LedgerTransport backed by SorobanServerAsync.

    Idempotent RPC calls get a bounded retry on connection errors
    (``retry_count`` attempts, ``retry_delay`` apart). send_transaction is
    never retried.
    """

    def __init__(
        self,
        contract_id: str,
        rpc_url: str,
        network_passphrase: str,
        base_fee: int = 100,
        tx_timeout: int = 300,
        poll_interval: float = 2.0,
        confirm_timeout: float = 60.0,
        confirm_poll_interval: float = 1.0,
        retry_count: int = 3,
        retry_delay: float = 1.0,
        server: SorobanServerAsync | None = None,
    ) -> None:
        self.contract_id = contract_id
        self.server = server or SorobanServerAsync(rpc_url)
        self._passphrase = network_passphrase
        self._base_fee = base_fee
        self._tx_timeout = tx_timeout
        self._poll_interval = poll_interval
        self._confirm_timeout = confirm_timeout
        self._confirm_poll_interval = confirm_poll_interval
        self._retry_count = retry_count
        self._retry_delay = retry_delay

    @classmethod
    def from_config(cls, cfg: ClientConfig) -> SorobanTransport:
        return cls(
            contract_id=cfg.contract_id,
            rpc_url=cfg.rpc_url,
            network_passphrase=cfg.passphrase,
            base_fee=cfg.base_fee,
            tx_timeout=cfg.tx_timeout,
            poll_interval=cfg.poll_interval,
            confirm_timeout=cfg.confirm_timeout,
            confirm_poll_interval=cfg.confirm_poll_interval,
            retry_count=cfg.retry_count,
            retry_delay=cfg.retry_delay,
        )

    async def close(self) -> None:
        """Close the underlying aiohttp session."""
        try:
            await self.server.close()
        except Exception as exc:
            log.debug("Closing Soroban server failed: %s", exc)

    async def with_retry(self, op_name: str, call: Callable[[], Awaitable[T]]) -> T:
        """Run ``call`` with bounded retry on transient connection errors."""
        attempt = 0
        while True:
            try:
                return await call()
            except _TRANSIENT_ERRORS as exc:
                attempt += 1
                if attempt > self._retry_count:
                    raise NetworkFailureError(
                        f"{op_name} failed after {attempt} attempts: {exc}"
                    ) from exc
                log.warning(
                    "%s failed (attempt %d/%d): %s",
                    op_name, attempt, self._retry_count, exc,
                )
                await asyncio.sleep(self._retry_delay)

    # ── Reads ──────────────────────────────────────────────

    async def read_contract(self, function_name: str, args: Sequence[Any] = ()) -> Any:
        tx = self._build(Account(READ_SOURCE_ACCOUNT, 0), function_name, encode_args(function_name, args))
        sim = await self.with_retry(function_name, lambda: self.server.simulate_transaction(tx))
        if sim.error:
            raise SimulationError(f"Simulation failed for {function_name}: {sim.error}")
        if not sim.results:
            return None
        return decode_value(xdr.SCVal.from_xdr(sim.results[0].xdr))

    # ── Writes ─────────────────────────────────────────────

    async def simulate_call(
        self, function_name: str, caller: str, args: Sequence[Any] = ()
    ) -> SimulationResult:
        source = await self.with_retry("load_account", lambda: self.server.load_account(caller))
        tx = self._build(source, function_name, encode_args(function_name, args, caller))

        sim = await self.with_retry(function_name, lambda: self.server.simulate_transaction(tx))
        if sim.error:
            raise SimulationError(f"Simulation failed for {function_name}: {sim.error}")

        prepared = await self.server.prepare_transaction(tx, sim)
        result = None
        if sim.results and sim.results[0].xdr:
            result = decode_value(xdr.SCVal.from_xdr(sim.results[0].xdr))
        return SimulationResult(
            function_name=function_name,
            caller=caller,
            request=prepared,
            result=result,
            min_resource_fee=sim.min_resource_fee,
        )

    async def broadcast(self, signed_request: Any) -> str:
        try:
            response = await self.server.send_transaction(signed_request)
        except _TRANSIENT_ERRORS as exc:
            raise NetworkFailureError(f"send_transaction failed: {exc}") from exc

        if response.status == SendTransactionStatus.ERROR:
            raise BroadcastError(f"Transaction rejected by node: {response.error_result_xdr}")
        if response.status == SendTransactionStatus.TRY_AGAIN_LATER:
            raise NetworkFailureError("Node asked to try again later")
        return response.hash

    async def wait_for_finality(self, tx_id: str) -> TransactionReceipt:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._confirm_timeout
        while True:
            response = await self.with_retry(
                "get_transaction", lambda: self.server.get_transaction(tx_id),
            )
            if response.status == GetTransactionStatus.SUCCESS:
                return TransactionReceipt(tx_id=tx_id, ledger_sequence=response.ledger)
            if response.status == GetTransactionStatus.FAILED:
                raise ConfirmationError(f"Transaction {tx_id[:16]} failed: {response.result_xdr}")
            if loop.time() >= deadline:
                raise ConfirmationTimeoutError(
                    f"Transaction {tx_id[:16]} not final after {self._confirm_timeout:.0f}s"
                )
            await asyncio.sleep(self._confirm_poll_interval)

    # ── Logs ───────────────────────────────────────────────

    async def subscribe_to_logs(self, category: EventCategory) -> SorobanLogStream:
        latest = await self.with_retry("get_latest_ledger", self.server.get_latest_ledger)
        log.debug("Opening %s log stream at ledger %d", category.value, latest.sequence)
        return SorobanLogStream(self, category, latest.sequence, self._poll_interval)

    def _build(self, source: Account, function_name: str, parameters: list[xdr.SCVal]):
        return (
            TransactionBuilder(source, self._passphrase, base_fee=self._base_fee)
            .append_invoke_contract_function_op(
                contract_id=self.contract_id,
                function_name=function_name,
                parameters=parameters,
            )
            .set_timeout(self._tx_timeout)
            .build()
        )
