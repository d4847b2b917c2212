"""
metawallet.runtime — the chain engine.

- `types`:     ChainStep, Operation, ChainPlan, ChainResult, USE_PREVIOUS_OUTPUT
- `registry`:  ExtensionRegistry (id → extension address)
- `context`:   ExecutionState / ExecutionContext (per-run transient state)
- `approvals`: grant/revoke brackets around third-party pulls
- `builder`:   ChainBuilder (steps → flattened operations)
- `executor`:  ChainExecutor (initialize → execute → finalize, all-or-nothing)

`builder` and `executor` depend on `metawallet.extensions`; import them from
their modules directly.
"""

from .approvals import bracketed, resolved_bracket, token_bracket
from .context import ExecutionContext, ExecutionState
from .registry import ExtensionRegistry
from .types import (USE_PREVIOUS_OUTPUT, ChainPlan, ChainResult, ChainStep,
                    Operation)

__all__ = [
    "USE_PREVIOUS_OUTPUT",
    "ChainStep",
    "Operation",
    "ChainPlan",
    "ChainResult",
    "ExtensionRegistry",
    "ExecutionContext",
    "ExecutionState",
    "bracketed",
    "token_bracket",
    "resolved_bracket",
]
