"""gMammoth contract surface: function names, event topics, XDR helpers.

Contract interface (Soroban):
    register(user: Address)                      requires user auth
    deregister(user: Address)                    requires user auth
    send_gmammoth(from: Address, to: Address)    requires from auth
    is_registered(user: Address) -> bool
    get_registered_users() -> Vec<Address>

Events (single symbol topic):
    ("REGISTER",)    value: user Address
    ("DEREGISTER",)  value: user Address
    ("GMAMMOTH",)    value: Map { from: Address, to: Address }
"""

from __future__ import annotations

from typing import Any, Sequence

from stellar_sdk import Address, scval, xdr

from gmammoth.models.events import EventCategory

FN_REGISTER = "register"
FN_DEREGISTER = "deregister"
FN_SEND_GMAMMOTH = "send_gmammoth"
FN_IS_REGISTERED = "is_registered"
FN_GET_REGISTERED_USERS = "get_registered_users"

# Functions whose first argument is the authorizing caller
_CALLER_AUTH = frozenset({FN_REGISTER, FN_DEREGISTER, FN_SEND_GMAMMOTH})

EVENT_TOPICS = {
    EventCategory.REGISTRATION: "REGISTER",
    EventCategory.DEREGISTRATION: "DEREGISTER",
    EventCategory.MESSAGE_DELIVERED: "GMAMMOTH",
}

# Pre-computed XDR base64 for topic symbols used in filters
TOPIC_XDR = {
    category: scval.to_symbol(symbol).to_xdr()
    for category, symbol in EVENT_TOPICS.items()
}


def _encode_arg(value: Any) -> xdr.SCVal:
    if isinstance(value, xdr.SCVal):
        return value
    if isinstance(value, Address):
        return scval.to_address(value)
    if isinstance(value, str) and len(value) == 56 and value[0] in "GC":
        return scval.to_address(value)
    if isinstance(value, bool):
        return scval.to_bool(value)
    if isinstance(value, int):
        return scval.to_uint64(value)
    if isinstance(value, str):
        return scval.to_string(value)
    raise TypeError(f"Unsupported contract argument: {value!r}")


def encode_args(
    function_name: str, args: Sequence[Any] = (), caller: str | None = None
) -> list[xdr.SCVal]:
    """Encode call arguments, prepending the caller where the contract needs auth."""
    values = list(args)
    if function_name in _CALLER_AUTH:
        if caller is None:
            raise ValueError(f"{function_name} requires a caller")
        values.insert(0, caller)
    return [_encode_arg(v) for v in values]


def decode_value(value: xdr.SCVal) -> Any:
    """Decode an SCVal to plain Python, turning Address objects into strings."""
    return _plain(scval.to_native(value))


def _plain(native: Any) -> Any:
    if isinstance(native, Address):
        return native.address
    if isinstance(native, bytes):
        return native.decode("utf-8", errors="replace")
    if isinstance(native, dict):
        return {_plain(k): _plain(v) for k, v in native.items()}
    if isinstance(native, (list, tuple)):
        return [_plain(v) for v in native]
    return native


def decode_topic(topic_xdr: str) -> str:
    """Decode a base64 XDR SCVal symbol to a plain string."""
    val = xdr.SCVal.from_xdr(topic_xdr)
    return scval.from_symbol(val)


def category_for_topic(symbol: str) -> EventCategory | None:
    for category, topic in EVENT_TOPICS.items():
        if topic == symbol:
            return category
    return None
