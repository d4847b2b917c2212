"""
metawallet.runtime.executor — the three-phase, all-or-nothing chain run.

    checkpoint
      ├─ initialize  every distinct extension opens its context
      ├─ execute     each operation: authorize → dispatch (as the wallet)
      └─ finalize    every initialized extension closes its context
    commit on success / revert on any failure (original error re-raised)

Finalization runs on both paths. When execution already failed, a finalize
error is logged and the original error is the one raised; on the success path
a finalize error aborts the run.

Operations are dispatched with the wallet as the caller. The authorization
oracle is asked with the address that submitted the chain, and it vets both
top-level operations and the calls extensions forward on the wallet's behalf
(see `CallContext.call`). Routers, vaults and tokens reached by an operation
never receive the run, so they cannot act as the wallet.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple

from metawallet import abi, metrics
from metawallet.access.oracle import AuthorizationOracle
from metawallet.errors import MetaWalletError, OperationDenied, UnknownTarget
from metawallet.extensions.base import Extension
from metawallet.logging import get_logger, trace_scope
from metawallet.state.world import World

from .context import ExecutionState
from .types import ChainPlan, ChainResult

log = get_logger(__name__)


class RunHandle:
    """
    Authorized dispatch for one run. Passed as `ctx.run` to the extensions whose
    execution context is open; every other target sees `run=None` and issues
    its own nested calls as itself.

    Attributes:
        caller:    the wallet; every dispatched call is made as this address.
        submitter: who submitted the chain; what the oracle is asked about.
        state:     the run's ExecutionState.
    """

    def __init__(
        self,
        world: World,
        oracle: AuthorizationOracle,
        *,
        caller: str,
        submitter: str,
        state: ExecutionState,
    ) -> None:
        self.world = world
        self.oracle = oracle
        self.caller = caller
        self.submitter = submitter
        self.state = state

    def dispatch(self, target: str, payload: bytes, *, value: int = 0, index: Optional[int] = None) -> bytes:
        sel, args = payload[: abi.SELECTOR_LEN], payload[abi.SELECTOR_LEN :]
        if not self.oracle.authorize(self.submitter, target, sel, args):
            raise OperationDenied(target=target, selector=sel, index=index)
        # third-party targets run as themselves; only open extensions act for the wallet
        run = self if self.state.is_active(target) else None
        return self.world.call(self.caller, target, payload, value=value, run=run)


class ChainExecutor:
    def __init__(
        self,
        world: World,
        oracle: AuthorizationOracle,
        *,
        wallet: str,
        state_factory: Callable[[], ExecutionState] = ExecutionState,
    ) -> None:
        self.world = world
        self.oracle = oracle
        self.wallet = wallet
        self._state_factory = state_factory

    def run(self, plan: ChainPlan, *, caller: str) -> ChainResult:
        state = self._state_factory()
        handle = RunHandle(self.world, self.oracle, caller=self.wallet, submitter=caller, state=state)
        journal = self.world.journal

        with trace_scope(component="executor", wallet=self.wallet) as trace_id, metrics.time_chain_run():
            log.info(
                "chain run started",
                extra={"submitter": caller, "operations": len(plan.operations),
                       "extensions": len(plan.extensions)},
            )
            marker = journal.checkpoint()
            try:
                results = self._lifecycle(plan, handle)
            except Exception as e:
                journal.revert_to(marker)
                metrics.observe_chain_run(committed=False, operations=len(plan.operations))
                log.warning(
                    "chain run aborted",
                    extra={"error": e.code if isinstance(e, MetaWalletError) else type(e).__name__},
                )
                raise
            journal.commit_to(marker)
            metrics.observe_chain_run(committed=True, operations=len(plan.operations))
            log.info("chain run committed", extra={"results": len(results)})

        return ChainResult(
            results=results,
            operations=plan.operations,
            extensions=plan.extensions,
            trace_id=trace_id,
        )

    # ------------------------------------------------------------------ phases

    def _lifecycle(self, plan: ChainPlan, handle: RunHandle) -> Tuple[bytes, ...]:
        initialized: List[Extension] = []
        try:
            for ref in plan.extensions:
                ext = self._extension(ref)
                ext.initialize_context(handle.state)
                initialized.append(ext)

            results: List[bytes] = []
            for i, op in enumerate(plan.operations):
                results.append(handle.dispatch(op.target, op.payload, value=op.value, index=i))
        except Exception:
            self._finalize(initialized, handle.state, raise_errors=False)
            raise
        self._finalize(initialized, handle.state, raise_errors=True)
        return tuple(results)

    def _finalize(self, extensions: Sequence[Extension], state: ExecutionState, *, raise_errors: bool) -> None:
        first: Optional[Exception] = None
        for ext in extensions:
            try:
                ext.finalize_context(state)
            except Exception as e:
                log.error("finalize failed for %s: %s", ext.address, e)
                if first is None:
                    first = e
        if first is not None and raise_errors:
            raise first

    def _extension(self, ref: str) -> Extension:
        ext = self.world.resolve(ref)
        if not isinstance(ext, Extension):
            raise UnknownTarget(ref)
        return ext


__all__ = ["ChainExecutor", "RunHandle"]
