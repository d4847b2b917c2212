"""
metawallet.runtime.builder — steps → flattened operations.

For step i the builder resolves the extension bound to `extension_id` and asks
it to `build(prev_ref, data)`. `prev_ref` is None for the first step and the
address of step i-1's extension otherwise: a structural handle the extension
may embed in its operations to read that extension's output at execute time.
Nothing is executed here.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Union

from metawallet.config import Limits
from metawallet.errors import ChainTooLong, EmptyChain, ExtensionNotFound
from metawallet.extensions.base import Extension
from metawallet.logging import get_logger
from metawallet.state.world import World

from .registry import ExtensionRegistry
from .types import ChainPlan, ChainStep, Operation

log = get_logger(__name__)


class ChainBuilder:
    def __init__(self, world: World, registry: ExtensionRegistry, limits: Limits) -> None:
        self.world = world
        self.registry = registry
        self.limits = limits

    def resolve(self, extension_id: str, *, step: Optional[int] = None) -> Extension:
        ref = self.registry.get(extension_id)
        ext = self.world.resolve(ref) if ref is not None else None
        if not isinstance(ext, Extension):
            raise ExtensionNotFound(extension_id, step=step)
        return ext

    def build(self, steps: Sequence[Union[ChainStep, Sequence[Any]]]) -> ChainPlan:
        chain = [ChainStep.of(s) for s in steps]
        if not chain:
            raise EmptyChain()
        if len(chain) > self.limits.max_chain_steps:
            raise ChainTooLong(kind="steps", size=len(chain), limit=self.limits.max_chain_steps)

        operations: List[Operation] = []
        touched: List[str] = []
        prev_ref: Optional[str] = None
        for i, step in enumerate(chain):
            ext = self.resolve(step.extension_id, step=i)
            built = ext.build(prev_ref, step.data)
            log.debug("step %d (%s) built %d operations", i, step.extension_id, len(built))
            operations.extend(built)
            if len(operations) > self.limits.max_operations:
                raise ChainTooLong(
                    kind="operations", size=len(operations), limit=self.limits.max_operations
                )
            if ext.address not in touched:
                touched.append(ext.address)
            prev_ref = ext.address

        return ChainPlan(operations=tuple(operations), extensions=tuple(touched), steps=tuple(chain))


__all__ = ["ChainBuilder"]
