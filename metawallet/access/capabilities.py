"""
metawallet.access.capabilities — the caller/capability gate.

The façade asks a `CapabilityChecker` one question: does `caller` hold
`capability`? `RoleTable` is an in-memory implementation with an admin who
may grant and revoke; any object with a matching `has_capability` works.
"""

from __future__ import annotations

import enum
from typing import Dict, Protocol, Set

from metawallet.errors import MissingCapability, NotOwner


class Capability(str, enum.Enum):
    EXECUTE = "execute"
    SETTLE = "settle"
    PAUSE = "pause"
    ADMINISTER = "administer"


class CapabilityChecker(Protocol):
    def has_capability(self, caller: str, capability: Capability) -> bool: ...


def require_capability(checker: CapabilityChecker, caller: str, capability: Capability) -> None:
    if not checker.has_capability(caller, capability):
        raise MissingCapability(caller, capability.value)


class RoleTable:
    """
    Capability membership per account. The admin implicitly holds every
    capability and is the only account allowed to grant or revoke.
    """

    def __init__(self, admin: str) -> None:
        self.admin = admin
        self._members: Dict[Capability, Set[str]] = {c: set() for c in Capability}

    def has_capability(self, caller: str, capability: Capability) -> bool:
        return caller == self.admin or caller in self._members[Capability(capability)]

    def grant(self, caller: str, capability: Capability, account: str) -> None:
        if caller != self.admin:
            raise NotOwner(caller)
        self._members[Capability(capability)].add(account)

    def revoke(self, caller: str, capability: Capability, account: str) -> None:
        if caller != self.admin:
            raise NotOwner(caller)
        self._members[Capability(capability)].discard(account)


__all__ = ["Capability", "CapabilityChecker", "RoleTable", "require_capability"]
