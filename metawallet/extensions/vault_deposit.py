"""
Deposit into an external tokenized vault.

Step data: {vault, assets, receiver, min_shares}
Output:    shares received by `receiver`, measured as a balance delta.

Static amount:
    asset.approve(vault, assets)
    ext.snapshot_balance(share_token, receiver)
    vault.deposit(assets, receiver)
    asset.approve(vault, 0)
    ext.settle_output(min_shares)

`assets == USE_PREVIOUS_OUTPUT`: prefixed by `resolve_dynamic_amount`, with
the approve/deposit/revoke calls forwarded through this extension.
"""

from __future__ import annotations

from typing import List, Optional

from metawallet import abi
from metawallet.abi import external
from metawallet.errors import InvalidStepData, ZeroAmount
from metawallet.protocols.external_vault import ExternalVault
from metawallet.runtime.approvals import resolved_bracket, token_bracket
from metawallet.runtime.types import Operation
from metawallet.state.world import CallContext

from .base import Extension, require_fields


class VaultDepositExtension(Extension):
    kind = "vault-deposit"
    PARAMS = (("vault", str), ("assets", int), ("receiver", str), ("min_shares", int))

    def _vault(self, address: str) -> ExternalVault:
        vault = self.world.resolve(address)
        if not isinstance(vault, ExternalVault):
            raise InvalidStepData("vault is not a tokenized vault", extension_id=self.kind)
        return vault

    def build(self, prev_ref: Optional[str], data: bytes) -> List[Operation]:
        p = self.decode_params(data)
        require_fields(p, "vault", "receiver")
        vault = self._vault(p["vault"])
        receiver = p["receiver"]
        snapshot = self.snapshot_op(vault.share_token.address, receiver)

        if self.is_dynamic(p["assets"]):
            return [
                self.dynamic_prelude(prev_ref, target=vault.address, receiver=receiver),
                *resolved_bracket(
                    self.address,
                    vault.asset,
                    [snapshot, Operation.call(self.address, "deposit_resolved")],
                ),
                self.settle_op(p["min_shares"]),
            ]

        if p["assets"] == 0:
            raise ZeroAmount("assets")
        return [
            *token_bracket(
                vault.asset,
                vault.address,
                p["assets"],
                [snapshot, Operation.call(vault.address, "deposit", p["assets"], receiver)],
            ),
            self.settle_op(p["min_shares"]),
        ]

    @external()
    def deposit_resolved(self, ctx: CallContext) -> int:
        c = self.context(ctx)
        raw = ctx.call(c.target, abi.encode_call("deposit", c.amount, c.receiver))
        return abi.decode_result(raw)


__all__ = ["VaultDepositExtension"]
