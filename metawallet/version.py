"""
metawallet.version — what a running MetaWallet reports about its own build.

`build_info()` names the release, the call-encoding version the entry-point
selectors are derived under and the source revision. The same mapping is
published as the `metawallet_build_info` metric and attached to the line a
wallet logs when it comes up, so a settlement or chain run seen in logs can
be tied to the code and the selector set that produced it.

The revision comes from `METAWALLET_GIT_DESCRIBE` when set (containers ship
without a checkout), otherwise from `git describe`, otherwise "unknown".
"""

from __future__ import annotations

import os
import subprocess
from functools import lru_cache
from typing import Dict

from .abi import ABI_DOMAIN

__version__ = "0.1.0"


def abi_version() -> str:
    """The version tag inside the selector domain, e.g. "v1" for b"metawallet:abi:v1|"."""
    return ABI_DOMAIN.rstrip(b"|").rsplit(b":", 1)[-1].decode("ascii")


@lru_cache(maxsize=1)
def source_revision() -> str:
    override = os.getenv("METAWALLET_GIT_DESCRIBE", "").strip()
    if override:
        return override
    try:
        out = subprocess.run(
            ["git", "describe", "--tags", "--dirty", "--always"],
            capture_output=True,
            check=True,
            cwd=os.path.dirname(os.path.abspath(__file__)),
        )
    except (OSError, subprocess.CalledProcessError):
        return "unknown"
    return out.stdout.decode("utf-8", "replace").strip() or "unknown"


@lru_cache(maxsize=1)
def build_info() -> Dict[str, str]:
    """Labels for logs and the build-info metric; all values are strings."""
    rev = source_revision()
    return {
        "version": __version__,
        "abi": abi_version(),
        "revision": rev,
        "modified": "true" if rev.endswith("-dirty") else "false",
    }


__all__ = ["__version__", "abi_version", "source_revision", "build_info"]
