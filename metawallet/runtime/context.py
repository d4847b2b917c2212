"""
metawallet.runtime.context — per-run transient state of extensions.

An `ExecutionState` is created by the executor at the start of every chain run
and dropped at its end. Each touched extension opens exactly one
`ExecutionContext` in it during initialization and closes it during
finalization, so the state is empty before and after every run whatever the
outcome. Extensions only ever read another extension's context through that
extension's `produce_output`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from metawallet.errors import ContextActive


@dataclass
class ExecutionContext:
    amount: int = 0
    target: Optional[str] = None
    receiver: Optional[str] = None
    params: List[Any] = field(default_factory=list)
    # balance-delta measurement
    token: Optional[str] = None
    account: Optional[str] = None
    balance_before: Optional[int] = None
    output: int = 0


class ExecutionState:
    def __init__(self) -> None:
        self._contexts: Dict[str, ExecutionContext] = {}

    def open(self, extension: str) -> ExecutionContext:
        if extension in self._contexts:
            raise ContextActive(extension, active=True)
        c = ExecutionContext()
        self._contexts[extension] = c
        return c

    def get(self, extension: str) -> ExecutionContext:
        c = self._contexts.get(extension)
        if c is None:
            raise ContextActive(extension, active=False)
        return c

    def close(self, extension: str) -> None:
        if self._contexts.pop(extension, None) is None:
            raise ContextActive(extension, active=False)

    def is_active(self, extension: str) -> bool:
        return extension in self._contexts

    def active(self) -> Tuple[str, ...]:
        return tuple(self._contexts)

    def is_empty(self) -> bool:
        return not self._contexts

    def __len__(self) -> int:
        return len(self._contexts)


__all__ = ["ExecutionContext", "ExecutionState"]
