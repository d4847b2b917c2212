"""
metawallet.wallet — the MetaWallet contract.

One world contract that custodies the asset, issues its own share token and
owns the extension registry, the chain builder/executor and the two ledgers.

Capability gates
----------------
EXECUTE     execute, run_chain
SETTLE      settle_total_assets, fulfill_redeem
PAUSE       pause, unpause
ADMINISTER  initialize_vault, install_extension, uninstall_extension,
            set_max_allowed_delta

Deposit and redeem entry points are open to any caller; the request ledger
checks that the caller is the owner (requests) or the controller (claims).

Mutating entry points other than `initialize_vault` are `@external`, so they
can also be the target of a chain operation (subject to the authorization
oracle).
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

from metawallet.abi import external
from metawallet.access.capabilities import (Capability, CapabilityChecker,
                                            require_capability)
from metawallet.access.oracle import AllowAllOracle, AuthorizationOracle
from metawallet.config import MetaWalletConfig, get_config, summary
from metawallet.logging import get_logger
from metawallet.protocols.token import Token
from metawallet.runtime.builder import ChainBuilder
from metawallet.runtime.context import ExecutionState
from metawallet.runtime.executor import ChainExecutor
from metawallet.runtime.registry import ExtensionRegistry
from metawallet.runtime.types import ChainResult
from metawallet.state.world import CallContext, Contract, World
from metawallet.vault.ledger import VaultLedger
from metawallet.vault.requests import RequestLedger
from metawallet.version import build_info

log = get_logger(__name__)


class MetaWallet(Contract):
    def __init__(
        self,
        world: World,
        *,
        capabilities: CapabilityChecker,
        oracle: Optional[AuthorizationOracle] = None,
        config: Optional[MetaWalletConfig] = None,
        state_factory=ExecutionState,
    ) -> None:
        super().__init__(world, label="metawallet")
        self.config = config or get_config()
        self.capabilities = capabilities
        self.registry = ExtensionRegistry(world, self.address)
        self.builder = ChainBuilder(world, self.registry, self.config.limits)
        self.executor = ChainExecutor(
            world, oracle or AllowAllOracle(), wallet=self.address, state_factory=state_factory
        )
        self.ledger = VaultLedger(world, self.address, self.config.settlement)
        self.requests = RequestLedger(self.ledger)
        log.info(
            "wallet ready",
            extra={"wallet": self.address, "config": summary(self.config), **build_info()},
        )

    def _require(self, ctx: CallContext, capability: Capability) -> None:
        require_capability(self.capabilities, ctx.caller, capability)

    # ------------------------------------------------------------ vault setup

    def initialize_vault(
        self, ctx: CallContext, asset: str, *, symbol: str = "mwSHARE", max_allowed_delta: Optional[int] = None
    ) -> Token:
        """Issue the share token (minted by this wallet) and initialize the ledger."""
        self._require(ctx, Capability.ADMINISTER)
        # the address book is not journaled: reject before deploying the share token
        self.ledger.check_setup(asset, max_allowed_delta)
        with self.world.atomic():
            decimals = getattr(self.world.resolve(asset), "decimals", 18)
            share = Token(self.world, symbol=symbol, decimals=decimals, minter=self.address)
            self.ledger.initialize(asset, share.address, max_allowed_delta)
        return share

    # ------------------------------------------------------------- extensions

    @external()
    def install_extension(self, ctx: CallContext, extension_id: str, ref: Optional[str]) -> None:
        self._require(ctx, Capability.ADMINISTER)
        self.registry.install(extension_id, ref)
        log.info("extension installed", extra={"extension": extension_id, "ref": ref})

    @external()
    def uninstall_extension(self, ctx: CallContext, extension_id: str) -> None:
        self._require(ctx, Capability.ADMINISTER)
        self.registry.uninstall(extension_id)
        log.info("extension uninstalled", extra={"extension": extension_id})

    def installed_extensions(self) -> Tuple[str, ...]:
        return self.registry.ids()

    def extension(self, extension_id: str) -> Optional[str]:
        return self.registry.get(extension_id)

    # ------------------------------------------------------------------ chains

    def run_chain(self, ctx: CallContext, steps: Sequence[Any]) -> ChainResult:
        self._require(ctx, Capability.EXECUTE)
        plan = self.builder.build(steps)
        return self.executor.run(plan, caller=ctx.caller)

    @external()
    def execute(self, ctx: CallContext, steps: Sequence[Any]) -> List[bytes]:
        """Build and run `steps`; returns the raw result bytes of every operation."""
        return list(self.run_chain(ctx, steps).results)

    # -------------------------------------------------------------- settlement

    @external()
    def settle_total_assets(
        self,
        ctx: CallContext,
        new_total: int,
        root: bytes,
        ids: Optional[List[bytes]] = None,
        values: Optional[List[int]] = None,
    ) -> None:
        self._require(ctx, Capability.SETTLE)
        breakdown = None if ids is None and values is None else (ids or [], values or [])
        self.ledger.settle_total_assets(new_total, root, breakdown)

    @external()
    def set_max_allowed_delta(self, ctx: CallContext, bps: int) -> None:
        self._require(ctx, Capability.ADMINISTER)
        self.ledger.set_max_allowed_delta(bps)

    @external()
    def pause(self, ctx: CallContext) -> None:
        self._require(ctx, Capability.PAUSE)
        self.ledger.pause()

    @external()
    def unpause(self, ctx: CallContext) -> None:
        self._require(ctx, Capability.PAUSE)
        self.ledger.unpause()

    @external()
    def fulfill_redeem(self, ctx: CallContext, controller: str, shares: int) -> int:
        self._require(ctx, Capability.SETTLE)
        return self.requests.fulfill_redeem(controller, shares)

    # ---------------------------------------------------------------- requests

    @external()
    def request_deposit(self, ctx: CallContext, assets: int, controller: str, owner: str) -> int:
        return self.requests.request_deposit(ctx.caller, assets, controller, owner)

    @external()
    def request_redeem(self, ctx: CallContext, shares: int, controller: str, owner: str) -> int:
        return self.requests.request_redeem(ctx.caller, shares, controller, owner)

    @external()
    def deposit(self, ctx: CallContext, assets: int, receiver: str, controller: str) -> int:
        return self.requests.deposit(ctx.caller, assets, receiver, controller)

    @external()
    def mint(self, ctx: CallContext, shares: int, receiver: str, controller: str) -> int:
        return self.requests.mint(ctx.caller, shares, receiver, controller)

    @external()
    def redeem(self, ctx: CallContext, shares: int, receiver: str, controller: str) -> int:
        return self.requests.redeem(ctx.caller, shares, receiver, controller)

    @external()
    def withdraw(self, ctx: CallContext, assets: int, receiver: str, controller: str) -> int:
        return self.requests.withdraw(ctx.caller, assets, receiver, controller)

    # ------------------------------------------------------------------- reads

    def total_assets(self) -> int:
        return self.ledger.total_assets()

    def total_idle(self) -> int:
        return self.ledger.total_idle()

    def share_price(self) -> int:
        return self.ledger.share_price()

    def merkle_root(self) -> bytes:
        return self.ledger.merkle_root()

    def paused(self) -> bool:
        return self.ledger.paused()

    def max_allowed_delta(self) -> int:
        return self.ledger.max_allowed_delta()

    def max_redeem(self, controller: str) -> int:
        return self.requests.max_redeem(controller)

    def pending_deposit(self, controller: str) -> int:
        return self.requests.pending_deposit(controller)

    def claimable_deposit(self, controller: str) -> int:
        return self.requests.claimable_deposit(controller)

    def pending_redeem(self, controller: str) -> int:
        return self.requests.pending_redeem(controller)

    def claimable_redeem(self, controller: str) -> int:
        return self.requests.claimable_redeem(controller)

    def convert_to_shares(self, assets: int) -> int:
        return self.ledger.convert_to_shares(assets)

    def convert_to_assets(self, shares: int) -> int:
        return self.ledger.convert_to_assets(shares)

    compute_commitment = staticmethod(VaultLedger.compute_commitment)
    verify_breakdown = staticmethod(VaultLedger.verify_breakdown)


__all__ = ["MetaWallet"]
