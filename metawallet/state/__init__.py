"""
metawallet.state — the deterministic host the chain engine runs against.

- `Journal`: overlay journal keyed by (address, key) with nested checkpoints.
- `World`: contract address book, native balances and call dispatch.
- `Contract` / `CallContext`: base class and per-call environment for entry points.
"""

from .journal import Journal
from .world import CallContext, Contract, Dispatcher, World, slot

__all__ = ["Journal", "World", "Contract", "CallContext", "Dispatcher", "slot"]
