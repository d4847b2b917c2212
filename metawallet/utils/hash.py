"""
metawallet.utils.hash
=====================

SHA3-256 and a canonical, domain-separated Merkle root.

Tree shape
----------
- Every leaf is hashed as  H(0x00 || leaf_bytes)
- Every inner node as      H(0x01 || left || right)
- An odd level duplicates its last hash.
- The empty tree's root is H(0x00 || b"").

The tags keep leaves and inner nodes from ever colliding, so a breakdown of
N entries cannot be replayed as a different breakdown with the same root.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, List, Union

BytesLike = Union[bytes, bytearray, memoryview]

ZERO32 = b"\x00" * 32

_LEAF_TAG = b"\x00"
_NODE_TAG = b"\x01"


def _b(x: BytesLike) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError("expected bytes-like value")
    return bytes(x)


def sha3_256(data: BytesLike) -> bytes:
    """SHA3-256 digest."""
    return hashlib.sha3_256(_b(data)).digest()


def leaf_hash(leaf: BytesLike) -> bytes:
    return sha3_256(_LEAF_TAG + _b(leaf))


def node_hash(left: bytes, right: bytes) -> bytes:
    return sha3_256(_NODE_TAG + left + right)


def merkle_root(leaves: Iterable[BytesLike]) -> bytes:
    level: List[bytes] = [leaf_hash(x) for x in leaves]
    if not level:
        return leaf_hash(b"")

    while len(level) > 1:
        if len(level) % 2:
            level.append(level[-1])
        level = [node_hash(level[i], level[i + 1]) for i in range(0, len(level), 2)]
    return level[0]


__all__ = ["BytesLike", "ZERO32", "sha3_256", "leaf_hash", "node_hash", "merkle_root"]
