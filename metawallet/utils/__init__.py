"""Small shared helpers (hashing, address handling)."""

from .hash import ZERO32, merkle_root, sha3_256

__all__ = ["ZERO32", "merkle_root", "sha3_256"]
