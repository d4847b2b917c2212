"""
metawallet.extensions.base — the uniform extension interface.

Lifecycle (driven by the executor)
----------------------------------
build(prev_ref, data) -> [Operation]     at plan time, pure
initialize_context(state)                opens this extension's context
finalize_context(state)                  closes it
produce_output(state) -> int             realized output of the last action

Shared entry points (targets of the operations an extension builds)
-------------------------------------------------------------------
resolve_dynamic_amount(prev_ref, target, receiver, sub_payload)
    reads `produce_output` of the extension at `prev_ref` and stores it,
    with the other arguments, in this extension's context
approve_resolved(token) / revoke_resolved(token)
    grant / reset the resolved amount to the resolved target
snapshot_balance(token, account)
    records the pre-action balance of `account` in `token`
settle_output(minimum)
    output = balance now − snapshot; must reach `minimum`

All entry points run as the wallet executing the chain and require the
extension's context to be open in that run. Calls made on the wallet's
behalf go through `ctx.call`, i.e. through the run's authorized dispatch.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple

import cbor2

from metawallet import abi
from metawallet.abi import external
from metawallet.errors import (ContextActive, InvalidStepData,
                               MissingPreviousExtension, NotOwner,
                               OutputBelowMinimum, StateError, UnknownTarget,
                               ZeroAmount)
from metawallet.logging import get_logger
from metawallet.runtime.context import ExecutionContext, ExecutionState
from metawallet.runtime.types import USE_PREVIOUS_OUTPUT, Operation
from metawallet.state.world import CallContext, Contract, World

log = get_logger(__name__)


class Extension(Contract):
    kind: ClassVar[str] = "extension"
    # name -> accepted python types, in encoding order
    PARAMS: ClassVar[Tuple[Tuple[str, type], ...]] = ()

    def __init__(self, world: World, *, owner: str) -> None:
        super().__init__(world, label=f"extension:{self.kind}")
        self.owner = owner

    # ------------------------------------------------------------ parameters

    @classmethod
    def encode_params(cls, **params: Any) -> bytes:
        """Encode a step's data blob (canonical CBOR map)."""
        missing = [name for name, _ in cls.PARAMS if name not in params]
        if missing:
            raise InvalidStepData(f"missing fields: {', '.join(missing)}", extension_id=cls.kind)
        return cbor2.dumps({name: params[name] for name, _ in cls.PARAMS}, canonical=True)

    @classmethod
    def decode_params(cls, data: bytes) -> Dict[str, Any]:
        try:
            obj = cbor2.loads(data)
        except (cbor2.CBORDecodeError, ValueError, TypeError) as e:
            raise InvalidStepData(f"undecodable step data: {e}", extension_id=cls.kind) from e
        if not isinstance(obj, dict):
            raise InvalidStepData("step data must be a map", extension_id=cls.kind)
        expected = {name for name, _ in cls.PARAMS}
        if set(obj) != expected:
            raise InvalidStepData(
                f"unexpected fields: {sorted(map(str, set(obj) ^ expected))}", extension_id=cls.kind
            )
        for name, typ in cls.PARAMS:
            v = obj[name]
            if isinstance(v, bool) or not isinstance(v, typ):
                raise InvalidStepData(f"field {name!r} must be {typ.__name__}", extension_id=cls.kind)
            if typ is int and v < 0:
                raise InvalidStepData(f"field {name!r} must be unsigned", extension_id=cls.kind)
        return obj

    # ------------------------------------------------------------- lifecycle

    def build(self, prev_ref: Optional[str], data: bytes) -> List[Operation]:
        raise NotImplementedError

    def initialize_context(self, state: ExecutionState) -> None:
        state.open(self.address)

    def finalize_context(self, state: ExecutionState) -> None:
        state.close(self.address)

    def produce_output(self, state: ExecutionState) -> int:
        return state.get(self.address).output

    # ------------------------------------------------------- build helpers

    def dynamic_prelude(
        self,
        prev_ref: Optional[str],
        *,
        target: str,
        receiver: str,
        sub_args: Tuple[Any, ...] = (),
    ) -> Operation:
        """First operation of a step whose amount comes from the previous step."""
        if prev_ref is None:
            raise MissingPreviousExtension(self.kind)
        return Operation.call(
            self.address, "resolve_dynamic_amount", prev_ref, target, receiver, abi.encode_args(*sub_args)
        )

    @staticmethod
    def is_dynamic(amount: int) -> bool:
        return amount == USE_PREVIOUS_OUTPUT

    def snapshot_op(self, token: str, account: str) -> Operation:
        return Operation.call(self.address, "snapshot_balance", token, account)

    def settle_op(self, minimum: int) -> Operation:
        return Operation.call(self.address, "settle_output", minimum)

    # --------------------------------------------------- execute-time access

    def context(self, ctx: CallContext) -> ExecutionContext:
        run = ctx.run
        if run is None:
            raise ContextActive(self.address, active=False)
        if ctx.caller != run.caller:
            raise NotOwner(ctx.caller)
        return run.state.get(self.address)

    def _balance(self, token: str, account: str) -> int:
        t = self.world.resolve(token)
        if t is None or not hasattr(t, "balance_of"):
            raise UnknownTarget(token)
        return t.balance_of(account)

    # ------------------------------------------------- shared entry points

    @external()
    def resolve_dynamic_amount(
        self, ctx: CallContext, prev_ref: str, target: str, receiver: str, sub_payload: bytes
    ) -> int:
        c = self.context(ctx)
        prev = self.world.resolve(prev_ref)
        if not isinstance(prev, Extension):
            raise UnknownTarget(prev_ref)
        amount = prev.produce_output(ctx.run.state)
        if amount <= 0:
            raise ZeroAmount("previous output")
        c.amount = amount
        c.target = target
        c.receiver = receiver
        c.params = abi.decode_args(sub_payload)
        log.debug("resolved dynamic amount", extra={"extension": self.kind, "amount": amount})
        return amount

    @external()
    def approve_resolved(self, ctx: CallContext, token: str) -> bool:
        c = self.context(ctx)
        ctx.call(token, abi.encode_call("approve", c.target, c.amount))
        return True

    @external()
    def revoke_resolved(self, ctx: CallContext, token: str) -> bool:
        c = self.context(ctx)
        ctx.call(token, abi.encode_call("approve", c.target, 0))
        return True

    @external()
    def snapshot_balance(self, ctx: CallContext, token: str, account: str) -> int:
        c = self.context(ctx)
        c.token = token
        c.account = account
        c.balance_before = self._balance(token, account)
        return c.balance_before

    @external()
    def settle_output(self, ctx: CallContext, minimum: int) -> int:
        c = self.context(ctx)
        if c.balance_before is None or c.token is None or c.account is None:
            raise StateError("settle_output without a balance snapshot", code="NO_SNAPSHOT")
        realized = self._balance(c.token, c.account) - c.balance_before
        if realized < minimum:
            raise OutputBelowMinimum(realized=realized, minimum=minimum)
        c.output = realized
        c.balance_before = None
        return realized


def require_fields(params: Mapping[str, Any], *names: str) -> None:
    for n in names:
        if not params.get(n):
            raise ZeroAmount(n)


__all__ = ["Extension", "require_fields"]
