"""Error classifier - maps raw node/wallet failures to ClassifiedError."""

from __future__ import annotations

import asyncio

import aiohttp
from stellar_sdk.exceptions import ConnectionError as StellarConnectionError

from gmammoth.exceptions import (
    NetworkFailureError,
    SigningRejectedError,
    SimulationError,
    WalletNotConnectedError,
)
from gmammoth.models.records import ClassifiedError, ErrorKind

# EIP-1193 style "user rejected request" code; some signers reuse it
USER_REJECTED_CODE = 4001

_REJECTION_MARKERS = (
    "user rejected",
    "user denied",
    "rejected the request",
    "cancelled by user",
    "canceled by user",
)
_SIMULATION_MARKERS = ("simulation failed", "simulate")

MAX_DETAIL_LENGTH = 200

GENERIC_DETAIL = "Transaction failed. Please try again."
NETWORK_DETAIL = "Network error occurred"
WALLET_DETAIL = "Wallet not connected"

_NETWORK_ERRORS = (
    NetworkFailureError,
    StellarConnectionError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
    OSError,
)


def _message(raw: object) -> str:
    try:
        msg = getattr(raw, "message", None)
        if isinstance(msg, str) and msg:
            return msg
        return str(raw) if raw is not None else ""
    except Exception:
        return ""


def _short(msg: str) -> str | None:
    msg = msg.strip()
    if msg and len(msg) <= MAX_DETAIL_LENGTH:
        return msg
    return None


def _code(raw: object) -> object:
    try:
        return getattr(raw, "code", None)
    except Exception:
        return None


def _is_rejection(raw: object, lowered: str) -> bool:
    if isinstance(raw, SigningRejectedError):
        return True
    if _code(raw) == USER_REJECTED_CODE:
        return True
    return any(marker in lowered for marker in _REJECTION_MARKERS)


def classify(raw: object) -> ClassifiedError:
    """Reduce any failure to a ClassifiedError. Never raises.

    Rejection is checked before everything else: wallets commonly attach
    a generic message alongside the rejection code.
    """
    msg = _message(raw)
    lowered = msg.lower()

    if _is_rejection(raw, lowered):
        return ClassifiedError(ErrorKind.USER_REJECTED, _short(msg))

    if isinstance(raw, SimulationError) or any(m in lowered for m in _SIMULATION_MARKERS):
        return ClassifiedError(ErrorKind.SIMULATION_FAILED, _short(msg))

    if isinstance(raw, WalletNotConnectedError):
        return ClassifiedError(ErrorKind.WALLET_NOT_CONNECTED, WALLET_DETAIL)

    if isinstance(raw, _NETWORK_ERRORS):
        return ClassifiedError(ErrorKind.NETWORK_ERROR, NETWORK_DETAIL)

    if detail := _short(msg):
        return ClassifiedError(ErrorKind.UNKNOWN, detail)

    return ClassifiedError(ErrorKind.UNKNOWN, GENERIC_DETAIL)
