"""
metawallet.access.oracle — per-operation authorization.

Before each operation of a chain run is dispatched, the executor asks the
oracle `authorize(caller, target, selector, encoded_args)`. A False answer
aborts the run with `OperationDenied`.

`AllowListOracle` approves (target, selector) pairs registered up front;
each pair may carry a predicate over the decoded argument list, e.g. to pin a
receiver to the wallet itself.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from metawallet import abi
from metawallet.errors import MalformedPayload

ArgsPredicate = Callable[[List[Any]], bool]


class AuthorizationOracle(Protocol):
    def authorize(self, caller: str, target: str, selector: bytes, encoded_args: bytes) -> bool: ...


class AllowAllOracle:
    """Approves every operation."""

    def authorize(self, caller: str, target: str, selector: bytes, encoded_args: bytes) -> bool:
        return True


class AllowListOracle:
    def __init__(self) -> None:
        self._rules: Dict[Tuple[str, bytes], Optional[ArgsPredicate]] = {}

    def allow(self, target: str, name: str, predicate: Optional[ArgsPredicate] = None) -> None:
        self._rules[(target, abi.selector(name))] = predicate

    def deny(self, target: str, name: str) -> None:
        self._rules.pop((target, abi.selector(name)), None)

    def authorize(self, caller: str, target: str, selector: bytes, encoded_args: bytes) -> bool:
        key = (target, bytes(selector))
        if key not in self._rules:
            return False
        predicate = self._rules[key]
        if predicate is None:
            return True
        try:
            args = abi.decode_args(encoded_args)
        except MalformedPayload:
            return False
        return bool(predicate(args))


__all__ = ["AuthorizationOracle", "AllowAllOracle", "AllowListOracle", "ArgsPredicate"]
