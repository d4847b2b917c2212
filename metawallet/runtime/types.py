"""
metawallet.runtime.types — value types flowing through the chain engine.

- `ChainStep`: one (extension id, opaque data) pair submitted by the operator.
- `Operation`: one atomic call descriptor (target, value, payload).
- `ChainPlan`: the flattened operations plus the distinct extensions touched.
- `ChainResult`: raw result bytes per operation, and the run's trace id.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple, Union

from metawallet import abi
from metawallet.errors import InvalidStepData

# Marks a step amount that must be taken from the previous step's output.
USE_PREVIOUS_OUTPUT = 2**256 - 1


@dataclass(frozen=True)
class ChainStep:
    extension_id: str
    data: bytes

    @classmethod
    def of(cls, step: Union["ChainStep", Sequence[Any]]) -> "ChainStep":
        """Accept a ChainStep or an (id, data) pair (lists arrive this way over CBOR)."""
        if isinstance(step, ChainStep):
            return step
        try:
            extension_id, data = step
        except (TypeError, ValueError) as e:
            raise InvalidStepData(f"step must be an (id, data) pair: {e}") from e
        if not isinstance(extension_id, str) or not isinstance(data, (bytes, bytearray)):
            raise InvalidStepData("step id must be str and data bytes")
        return cls(extension_id=extension_id, data=bytes(data))


@dataclass(frozen=True)
class Operation:
    target: str
    value: int
    payload: bytes

    @classmethod
    def call(cls, target: str, name: str, *args: Any, value: int = 0) -> "Operation":
        return cls(target=target, value=value, payload=abi.encode_call(name, *args))

    @property
    def selector(self) -> bytes:
        return self.payload[: abi.SELECTOR_LEN]

    @property
    def encoded_args(self) -> bytes:
        return self.payload[abi.SELECTOR_LEN :]

    def args(self) -> List[Any]:
        return abi.decode_args(self.encoded_args)

    def is_call(self, name: str) -> bool:
        return self.selector == abi.selector(name)


@dataclass(frozen=True)
class ChainPlan:
    operations: Tuple[Operation, ...]
    extensions: Tuple[str, ...]
    steps: Tuple[ChainStep, ...] = ()


@dataclass(frozen=True)
class ChainResult:
    results: Tuple[bytes, ...]
    operations: Tuple[Operation, ...]
    extensions: Tuple[str, ...]
    trace_id: str

    def decoded(self) -> List[Any]:
        return [abi.decode_result(r) for r in self.results]


__all__ = ["USE_PREVIOUS_OUTPUT", "ChainStep", "Operation", "ChainPlan", "ChainResult"]
