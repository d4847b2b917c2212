"""
Swap aggregator with fixed per-pair rates.

`swap` pulls the input through an allowance, quotes `amount * num // den`
for the configured pair and pays the output from the router's own inventory.
`route_data` is accepted as opaque bytes; a route tag of b"fail" makes the
swap revert, which lets callers exercise a failing external target.
"""

from __future__ import annotations

from typing import Tuple

from metawallet.abi import external
from metawallet.errors import (DataError, NotOwner, OutputBelowMinimum,
                               ZeroAmount)
from metawallet.state.world import CallContext, Contract, World, slot
from metawallet.vault.math import mul_div, require_u256


def _k_rate(src: str, dst: str) -> bytes:
    return slot(b"router:rate", src, dst)


class SwapRouter(Contract):
    def __init__(self, world: World, *, owner: str) -> None:
        super().__init__(world, label="swap-router")
        self.owner = owner

    def rate(self, src: str, dst: str) -> Tuple[int, int]:
        return self._get(_k_rate(src, dst), (0, 1))

    def quote(self, src: str, dst: str, amount: int) -> int:
        num, den = self.rate(src, dst)
        return mul_div(amount, num, den)

    @external()
    def set_rate(self, ctx: CallContext, src: str, dst: str, num: int, den: int) -> None:
        if ctx.caller != self.owner:
            raise NotOwner(ctx.caller)
        if den <= 0:
            raise ZeroAmount("rate denominator")
        self._put(_k_rate(src, dst), (require_u256(num, "rate"), den))

    @external()
    def swap(
        self,
        ctx: CallContext,
        src: str,
        dst: str,
        amount: int,
        min_out: int,
        receiver: str,
        route_data: bytes,
    ) -> int:
        require_u256(amount)
        if not isinstance(route_data, bytes):
            raise DataError("route data must be bytes", code="BAD_ROUTE")
        if route_data == b"fail":
            raise DataError("route rejected by aggregator", code="ROUTE_FAILED")
        out = self.quote(src, dst, amount)
        if out == 0:
            raise ZeroAmount("swap output")
        if out < min_out:
            raise OutputBelowMinimum(realized=out, minimum=min_out)
        self._invoke(src, "transfer_from", ctx.caller, self.address, amount)
        self._invoke(dst, "transfer", receiver, out)
        return out


__all__ = ["SwapRouter"]
