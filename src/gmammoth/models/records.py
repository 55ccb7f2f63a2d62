"""Transaction records and operation results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """User-meaningful failure causes."""

    USER_REJECTED = "user_rejected"
    SIMULATION_FAILED = "simulation_failed"
    WALLET_NOT_CONNECTED = "wallet_not_connected"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ClassifiedError:
    """A failure reduced to one ErrorKind plus optional detail for display."""

    kind: ErrorKind
    detail: str | None = None

    def __str__(self) -> str:
        if self.detail:
            return f"{self.kind.value}: {self.detail}"
        return self.kind.value


class TxState(str, Enum):
    """Lifecycle of a PendingTransaction."""

    PENDING = "pending"
    SIMULATED = "simulated"
    BROADCAST = "broadcast"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class SimulationResult:
    """Outcome of a dry-run, ready to be signed and broadcast.

    ``request`` is the transport's prepared transaction (a Soroban
    TransactionEnvelope for the real transport). ``result`` is the decoded
    return value of the simulated call, if any.
    """

    function_name: str
    caller: str
    request: Any
    result: Any = None
    min_resource_fee: int | None = None


@dataclass
class TransactionReceipt:
    """Finalized transaction."""

    tx_id: str
    function_name: str = ""
    ledger_sequence: int | None = None
    result: Any = None


@dataclass
class PendingTransaction:
    """One in-flight contract call. Never persisted."""

    function_name: str
    caller: str
    args: tuple = ()
    state: TxState = TxState.PENDING
    simulation: SimulationResult | None = None
    simulation_error: BaseException | None = None
    tx_id: str | None = None
    receipt: TransactionReceipt | None = None
    error: ClassifiedError | None = None
    history: list[TxState] = field(default_factory=list)

    def advance(self, state: TxState) -> None:
        self.history.append(self.state)
        self.state = state


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    MESSAGE = "message"


@dataclass(frozen=True)
class Notification:
    """Payload handed to the rendering collaborator."""

    kind: NotificationKind
    title: str
    body: str = ""
    icon: str | None = None
    duration_ms: int = 3000
