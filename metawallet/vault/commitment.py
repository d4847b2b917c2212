"""
metawallet.vault.commitment — strategy-breakdown commitment.

A settlement may declare how the new total splits across strategies as
parallel `ids` / `values` arrays. The commitment is the Merkle root
(`metawallet.utils.hash.merkle_root`) over leaves

    leaf_i = ids[i] (32 bytes) || values[i] (32-byte big-endian)

in the order given. `verify_breakdown` only proves a claimed breakdown is the
one that was declared; it says nothing about whether the values are true.
"""

from __future__ import annotations

from typing import Sequence

from metawallet.errors import DataError, LengthMismatch
from metawallet.utils.hash import merkle_root, sha3_256

from .math import require_u256

STRATEGY_DOMAIN = b"metawallet:strategy|"


def strategy_id(name: str) -> bytes:
    """Derive a 32-byte strategy id from a human-readable name."""
    return sha3_256(STRATEGY_DOMAIN + name.encode("utf-8"))


def leaf(sid: bytes, value: int) -> bytes:
    if not isinstance(sid, (bytes, bytearray)) or len(sid) != 32:
        raise DataError("strategy id must be 32 bytes", code="BAD_STRATEGY_ID")
    return bytes(sid) + require_u256(value, "strategy value").to_bytes(32, "big")


def compute_commitment(ids: Sequence[bytes], values: Sequence[int]) -> bytes:
    if len(ids) != len(values):
        raise LengthMismatch(len(ids), len(values))
    return merkle_root(leaf(i, v) for i, v in zip(ids, values))


def verify_breakdown(ids: Sequence[bytes], values: Sequence[int], root: bytes) -> bool:
    return compute_commitment(ids, values) == bytes(root)


__all__ = ["STRATEGY_DOMAIN", "strategy_id", "leaf", "compute_commitment", "verify_breakdown"]
