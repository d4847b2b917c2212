"""
Swap through an allow-listed aggregator router.

Step data: {router, src_token, dst_token, amount, min_out, receiver, route_data}
Output:    dst tokens received by `receiver`, measured as a balance delta.

The extension keeps its own router allow-list, independent of the
authorization oracle, managed by its owner. A router is checked when the
step is built and again by `ensure_router_allowed` right before the swap, so
a router de-listed between build and execution is rejected.
"""

from __future__ import annotations

from typing import List, Optional

from metawallet import abi
from metawallet.abi import external
from metawallet.errors import NotOwner, TargetNotAllowed, ZeroAmount
from metawallet.logging import get_logger
from metawallet.runtime.approvals import resolved_bracket, token_bracket
from metawallet.runtime.types import Operation
from metawallet.state.world import CallContext, slot

from .base import Extension, require_fields

log = get_logger(__name__)


def _k_router(router: str) -> bytes:
    return slot(b"swap:router", router)


class AggregatorSwapExtension(Extension):
    kind = "aggregator-swap"
    PARAMS = (
        ("router", str),
        ("src_token", str),
        ("dst_token", str),
        ("amount", int),
        ("min_out", int),
        ("receiver", str),
        ("route_data", bytes),
    )

    # -------------------------------------------------------------- allow-list

    def is_router_allowed(self, router: str) -> bool:
        return bool(self._get(_k_router(router), False))

    @external()
    def allow_router(self, ctx: CallContext, router: str) -> None:
        if ctx.caller != self.owner:
            raise NotOwner(ctx.caller)
        self._put(_k_router(router), True)
        log.info("router allowed", extra={"router": router})

    @external()
    def disallow_router(self, ctx: CallContext, router: str) -> None:
        if ctx.caller != self.owner:
            raise NotOwner(ctx.caller)
        self._put(_k_router(router), None)
        log.info("router disallowed", extra={"router": router})

    @external()
    def ensure_router_allowed(self, ctx: CallContext, router: str) -> bool:
        if not self.is_router_allowed(router):
            raise TargetNotAllowed(router)
        return True

    # ------------------------------------------------------------------ build

    def build(self, prev_ref: Optional[str], data: bytes) -> List[Operation]:
        p = self.decode_params(data)
        require_fields(p, "router", "src_token", "dst_token", "receiver")
        router = p["router"]
        if not self.is_router_allowed(router):
            raise TargetNotAllowed(router)
        src, dst, receiver = p["src_token"], p["dst_token"], p["receiver"]
        min_out, route = p["min_out"], p["route_data"]
        guard = Operation.call(self.address, "ensure_router_allowed", router)
        snapshot = self.snapshot_op(dst, receiver)

        if self.is_dynamic(p["amount"]):
            return [
                self.dynamic_prelude(
                    prev_ref, target=router, receiver=receiver, sub_args=(src, dst, min_out, route)
                ),
                guard,
                *resolved_bracket(
                    self.address, src, [snapshot, Operation.call(self.address, "swap_resolved")]
                ),
                self.settle_op(min_out),
            ]

        if p["amount"] == 0:
            raise ZeroAmount("amount")
        swap = Operation.call(router, "swap", src, dst, p["amount"], min_out, receiver, route)
        return [
            guard,
            *token_bracket(src, router, p["amount"], [snapshot, swap]),
            self.settle_op(min_out),
        ]

    @external()
    def swap_resolved(self, ctx: CallContext) -> int:
        c = self.context(ctx)
        src, dst, min_out, route = c.params
        raw = ctx.call(c.target, abi.encode_call("swap", src, dst, c.amount, min_out, c.receiver, route))
        return abi.decode_result(raw)


__all__ = ["AggregatorSwapExtension"]
