"""
metawallet.runtime.approvals — grant-then-revoke around third-party pulls.

A spender is granted exactly the amount it will pull by the operation right
before the pull, and reset to zero by the operation right after it. The
same bracket shape is used for static amounts (the token is called directly)
and for amounts resolved at execute time (the extension's own
`approve_resolved` / `revoke_resolved` entry points issue the token calls).
If anything between the two fails, the run aborts and the grant is reverted
with everything else.
"""

from __future__ import annotations

from typing import List, Sequence

from .types import Operation


def bracketed(grant: Operation, revoke: Operation, inner: Sequence[Operation]) -> List[Operation]:
    return [grant, *inner, revoke]


def token_bracket(token: str, spender: str, amount: int, inner: Sequence[Operation]) -> List[Operation]:
    return bracketed(
        Operation.call(token, "approve", spender, amount),
        Operation.call(token, "approve", spender, 0),
        inner,
    )


def resolved_bracket(extension: str, token: str, inner: Sequence[Operation]) -> List[Operation]:
    return bracketed(
        Operation.call(extension, "approve_resolved", token),
        Operation.call(extension, "revoke_resolved", token),
        inner,
    )


__all__ = ["bracketed", "token_bracket", "resolved_bracket"]
