"""
metawallet.state.journal — journaled contract storage with nested checkpoints.

Every piece of contract state in the simulated world (token balances, ledger
totals, request books, registry bindings) lives in one `Journal`, keyed by
`(address, key)`. Writes go to the top overlay; reads consult overlays from
top → base. `commit()` merges the top overlay into the next layer (or into the
base mapping when only the root layer remains). `revert()` discards it.

A failed chain run reverts its checkpoint, which discards every write it made,
however deeply nested.

Values are stored as-is and must be treated as immutable by callers (ints,
strings, bytes, tuples, frozen dataclasses). Deletions are recorded with a
private marker so they shadow lower layers.

    j = Journal()
    j.begin()
    j.set("0xaa..", b"total", 10)
    j.commit()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, MutableMapping, Optional, Tuple

Slot = Tuple[str, bytes]

_DELETED = object()


def _key(address: str, key: bytes | bytearray | memoryview) -> Slot:
    if not isinstance(address, str):
        raise TypeError("address must be str")
    if not isinstance(key, (bytes, bytearray, memoryview)):
        raise TypeError("key must be bytes-like")
    return address, bytes(key)


@dataclass
class _Overlay:
    """A single journal layer. `_DELETED` values shadow lower layers."""

    writes: Dict[Slot, Any] = field(default_factory=dict)


class Journal:
    """
    Copy-on-write journal with nested checkpoints.

    API highlights
    --------------
    - begin() / commit() / revert()
    - checkpoint() / commit_to(marker) / revert_to(marker)
    - get(), set(), delete(), items()
    """

    def __init__(self, base: Optional[MutableMapping[Slot, Any]] = None) -> None:
        self._base: MutableMapping[Slot, Any] = {} if base is None else base
        self._layers: List[_Overlay] = [_Overlay()]

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        """Number of overlays (>= 1)."""
        return len(self._layers)

    def begin(self) -> int:
        """Start a new checkpoint. Returns the new depth marker."""
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> None:
        """Merge the top overlay into its parent, or into the base at the root."""
        top = self._layers.pop()
        if self._layers:
            self._layers[-1].writes.update(top.writes)
            return
        self._apply_to_base(top)
        self._layers.append(_Overlay())

    def revert(self) -> None:
        """Discard the top overlay (or clear it if it is the root)."""
        if len(self._layers) > 1:
            self._layers.pop()
        else:
            self._layers[0] = _Overlay()

    def checkpoint(self) -> int:
        return self.begin()

    def commit_to(self, marker: int) -> None:
        """Commit until the depth equals `marker - 1` (closing the checkpoint itself)."""
        if marker < 2:
            raise ValueError("marker must come from checkpoint()")
        while len(self._layers) >= marker:
            self.commit()

    def revert_to(self, marker: int) -> None:
        """Revert until the depth equals `marker - 1` (discarding the checkpoint itself)."""
        if marker < 2:
            raise ValueError("marker must come from checkpoint()")
        while len(self._layers) >= marker:
            self.revert()

    # ------------------------------------------------------------------ #
    # Storage API
    # ------------------------------------------------------------------ #

    def get(self, address: str, key: bytes, default: Any = None) -> Any:
        slot = _key(address, key)
        for layer in reversed(self._layers):
            if slot in layer.writes:
                v = layer.writes[slot]
                return default if v is _DELETED else v
        return self._base.get(slot, default)

    def set(self, address: str, key: bytes, value: Any) -> None:
        """Stage a write in the top overlay. Writing None is a deletion."""
        slot = _key(address, key)
        self._layers[-1].writes[slot] = _DELETED if value is None else value

    def delete(self, address: str, key: bytes) -> None:
        self._layers[-1].writes[_key(address, key)] = _DELETED

    def items(self, address: str) -> Iterator[Tuple[bytes, Any]]:
        """Visible (key, value) pairs of one address, sorted by key."""
        visible: Dict[bytes, Any] = {k: v for (a, k), v in self._base.items() if a == address}
        for layer in self._layers:
            for (a, k), v in layer.writes.items():
                if a != address:
                    continue
                if v is _DELETED:
                    visible.pop(k, None)
                else:
                    visible[k] = v
        for k in sorted(visible):
            yield k, visible[k]

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _apply_to_base(self, layer: _Overlay) -> None:
        for slot, v in layer.writes.items():
            if v is _DELETED:
                self._base.pop(slot, None)
            else:
                self._base[slot] = v


__all__ = ["Journal", "Slot"]
