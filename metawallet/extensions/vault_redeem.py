"""
Redeem shares from an external tokenized vault.

Step data: {vault, shares, receiver, min_assets}
Output:    assets received by `receiver`, measured as a balance delta.

The wallet running the chain owns the shares, so no approval is involved;
the redeem is forwarded through this extension, which names the executing
wallet as the share owner.
"""

from __future__ import annotations

from typing import List, Optional

from metawallet import abi
from metawallet.abi import external
from metawallet.errors import InvalidStepData, ZeroAmount
from metawallet.protocols.external_vault import ExternalVault
from metawallet.runtime.types import Operation
from metawallet.state.world import CallContext

from .base import Extension, require_fields


class VaultRedeemExtension(Extension):
    kind = "vault-redeem"
    PARAMS = (("vault", str), ("shares", int), ("receiver", str), ("min_assets", int))

    def build(self, prev_ref: Optional[str], data: bytes) -> List[Operation]:
        p = self.decode_params(data)
        require_fields(p, "vault", "receiver")
        vault = self.world.resolve(p["vault"])
        if not isinstance(vault, ExternalVault):
            raise InvalidStepData("vault is not a tokenized vault", extension_id=self.kind)
        receiver = p["receiver"]
        snapshot = self.snapshot_op(vault.asset, receiver)

        if self.is_dynamic(p["shares"]):
            return [
                self.dynamic_prelude(prev_ref, target=vault.address, receiver=receiver),
                snapshot,
                Operation.call(self.address, "redeem_resolved"),
                self.settle_op(p["min_assets"]),
            ]

        if p["shares"] == 0:
            raise ZeroAmount("shares")
        return [
            snapshot,
            Operation.call(self.address, "redeem_shares", vault.address, p["shares"], receiver),
            self.settle_op(p["min_assets"]),
        ]

    @external()
    def redeem_shares(self, ctx: CallContext, vault: str, shares: int, receiver: str) -> int:
        self.context(ctx)
        raw = ctx.call(vault, abi.encode_call("redeem", shares, receiver, ctx.caller))
        return abi.decode_result(raw)

    @external()
    def redeem_resolved(self, ctx: CallContext) -> int:
        c = self.context(ctx)
        raw = ctx.call(c.target, abi.encode_call("redeem", c.amount, c.receiver, ctx.caller))
        return abi.decode_result(raw)


__all__ = ["VaultRedeemExtension"]
