"""
metawallet.runtime.registry — id → extension address bindings.

Bindings live in the world journal under the owning wallet's address, so an
install or uninstall issued inside an aborted run is discarded with it.
Enumeration preserves installation order.
"""

from __future__ import annotations

from typing import Iterator, Optional, Tuple

from metawallet.errors import DuplicateExtension, ExtensionNotFound, NullReference
from metawallet.state.world import World, slot

K_IDS = b"registry:ids"


def _k_ref(extension_id: str) -> bytes:
    return slot(b"registry:ref", extension_id)


class ExtensionRegistry:
    def __init__(self, world: World, owner: str) -> None:
        self.world = world
        self.owner = owner

    def install(self, extension_id: str, ref: Optional[str]) -> None:
        if not extension_id:
            raise NullReference("extension id")
        if not ref:
            raise NullReference("extension reference")
        if self.get(extension_id) is not None:
            raise DuplicateExtension(extension_id)
        j = self.world.journal
        j.set(self.owner, _k_ref(extension_id), ref)
        j.set(self.owner, K_IDS, self.ids() + (extension_id,))

    def uninstall(self, extension_id: str) -> None:
        if self.get(extension_id) is None:
            raise ExtensionNotFound(extension_id)
        j = self.world.journal
        j.delete(self.owner, _k_ref(extension_id))
        j.set(self.owner, K_IDS, tuple(i for i in self.ids() if i != extension_id) or None)

    def get(self, extension_id: str) -> Optional[str]:
        return self.world.journal.get(self.owner, _k_ref(extension_id))

    def ids(self) -> Tuple[str, ...]:
        return self.world.journal.get(self.owner, K_IDS, ())

    def __contains__(self, extension_id: object) -> bool:
        return isinstance(extension_id, str) and self.get(extension_id) is not None

    def __len__(self) -> int:
        return len(self.ids())

    def __iter__(self) -> Iterator[str]:
        return iter(self.ids())


__all__ = ["ExtensionRegistry"]
