"""
metawallet.abi — call encoding for the simulated world.

Wire format
-----------
    payload  = selector(name) || CBOR([arg0, arg1, ...])   (canonical)
    selector = sha3_256(b"metawallet:abi:v1|" + name)[:4]
    result   = CBOR(return_value)                           (canonical)

Arguments are restricted to CBOR-native values: ints (arbitrary precision,
so the 2**256-1 dynamic-amount marker travels as a bignum), bytes, text,
None, booleans and lists. Tuples decode as lists.

The `@external` decorator marks a contract method as callable through
`World.call`. The wrapped method runs inside its own journal checkpoint, so
an exception leaves no partial writes behind.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

import cbor2

from .errors import MalformedPayload
from .utils.hash import sha3_256

ABI_DOMAIN = b"metawallet:abi:v1|"
SELECTOR_LEN = 4

F = TypeVar("F", bound=Callable[..., Any])


@functools.lru_cache(maxsize=512)
def selector(name: str) -> bytes:
    """4-byte discriminator for an entry point name."""
    return sha3_256(ABI_DOMAIN + name.encode("utf-8"))[:SELECTOR_LEN]


def encode_args(*args: Any) -> bytes:
    return cbor2.dumps(list(args), canonical=True)


def decode_args(raw: bytes) -> List[Any]:
    try:
        args = cbor2.loads(raw)
    except (cbor2.CBORDecodeError, ValueError, TypeError) as e:
        raise MalformedPayload(f"cbor: {e}") from e
    if not isinstance(args, list):
        raise MalformedPayload("arguments must be a CBOR array")
    return args


def encode_call(name: str, *args: Any) -> bytes:
    return selector(name) + encode_args(*args)


def decode_call(payload: bytes) -> Tuple[bytes, List[Any]]:
    """Split a payload into (selector, args)."""
    if len(payload) < SELECTOR_LEN:
        raise MalformedPayload("payload shorter than a selector")
    return bytes(payload[:SELECTOR_LEN]), decode_args(bytes(payload[SELECTOR_LEN:]))


def encode_result(value: Any) -> bytes:
    return cbor2.dumps(value, canonical=True)


def decode_result(raw: bytes) -> Any:
    try:
        return cbor2.loads(raw)
    except (cbor2.CBORDecodeError, ValueError, TypeError) as e:
        raise MalformedPayload(f"result: {e}") from e


# --------------------------------------------------------------------------- #
# Entry point registration
# --------------------------------------------------------------------------- #


def external(name: Optional[str] = None) -> Callable[[F], F]:
    """
    Mark `fn(self, ctx, *args)` as an entry point named `name` (default: the
    function name). The call runs inside a checkpoint of `ctx.world`.
    """

    def deco(fn: F) -> F:
        entry = name or fn.__name__

        @functools.wraps(fn)
        def wrapper(self, ctx, *args):
            with ctx.world.atomic():
                return fn(self, ctx, *args)

        wrapper.__abi_name__ = entry  # type: ignore[attr-defined]
        wrapper.__abi_selector__ = selector(entry)  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return deco


def entry_points(cls: type) -> Dict[bytes, Tuple[str, Callable[..., Any]]]:
    """Collect {selector: (name, function)} across the class MRO."""
    table: Dict[bytes, Tuple[str, Callable[..., Any]]] = {}
    for klass in reversed(cls.__mro__):
        for attr in vars(klass).values():
            sel = getattr(attr, "__abi_selector__", None)
            if sel is not None:
                table[sel] = (attr.__abi_name__, attr)
    return table


__all__ = [
    "ABI_DOMAIN",
    "SELECTOR_LEN",
    "MalformedPayload",
    "selector",
    "encode_args",
    "decode_args",
    "encode_call",
    "decode_call",
    "encode_result",
    "decode_result",
    "external",
    "entry_points",
]
