"""
Shared test world: a MetaWallet over a 6-decimal asset, one external vault,
one swap router (asset→other at 2:1) and the three extensions installed as
"deposit", "redeem" and "swap".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from metawallet.access import AllowAllOracle, Capability, RoleTable
from metawallet.config import load_config
from metawallet.extensions import (AggregatorSwapExtension,
                                   VaultDepositExtension,
                                   VaultRedeemExtension)
from metawallet.protocols import ExternalVault, SwapRouter, Token
from metawallet.runtime.context import ExecutionState
from metawallet.runtime.types import ChainResult
from metawallet.state import CallContext, World
from metawallet.wallet import MetaWallet

ADMIN = "0x" + "ad" * 20
OPERATOR = "0x" + "0e" * 20
KEEPER = "0x" + "4e" * 20
ALICE = "0x" + "aa" * 20
BOB = "0x" + "bb" * 20
MALLORY = "0x" + "66" * 20

ROUTER_INVENTORY = 10**12


class RecordingStates:
    """State factory that keeps every ExecutionState the executor creates."""

    def __init__(self) -> None:
        self.created: List[ExecutionState] = []

    def __call__(self) -> ExecutionState:
        s = ExecutionState()
        self.created.append(s)
        return s


@dataclass
class Env:
    world: World
    roles: RoleTable
    wallet: MetaWallet
    asset: Token
    share: Token
    other: Token
    ext_vault: ExternalVault
    router: SwapRouter
    deposit_ext: VaultDepositExtension
    redeem_ext: VaultRedeemExtension
    swap_ext: AggregatorSwapExtension
    states: RecordingStates
    oracle: Any = None
    extras: Dict[str, Any] = field(default_factory=dict)

    def ctx(self, caller: str) -> CallContext:
        return self.world.ctx(caller)

    # -- funding --------------------------------------------------------------

    def mint_asset(self, to: str, amount: int) -> None:
        self.asset.mint(self.ctx(ADMIN), to, amount)

    def fund(self, user: str, amount: int) -> int:
        """Deposit `amount` for `user` through request + claim; returns shares."""
        self.mint_asset(user, amount)
        self.asset.approve(self.ctx(user), self.wallet.address, amount)
        self.wallet.request_deposit(self.ctx(user), amount, user, user)
        return self.wallet.deposit(self.ctx(user), amount, user, user)

    # -- steps ----------------------------------------------------------------

    def deposit_step(self, assets: int, *, min_shares: int = 0, receiver: Optional[str] = None) -> Tuple[str, bytes]:
        return (
            "deposit",
            VaultDepositExtension.encode_params(
                vault=self.ext_vault.address,
                assets=assets,
                receiver=receiver or self.wallet.address,
                min_shares=min_shares,
            ),
        )

    def redeem_step(self, shares: int, *, min_assets: int = 0, receiver: Optional[str] = None) -> Tuple[str, bytes]:
        return (
            "redeem",
            VaultRedeemExtension.encode_params(
                vault=self.ext_vault.address,
                shares=shares,
                receiver=receiver or self.wallet.address,
                min_assets=min_assets,
            ),
        )

    def swap_step(
        self,
        amount: int,
        *,
        min_out: int = 0,
        src: Optional[str] = None,
        dst: Optional[str] = None,
        router: Optional[str] = None,
        route_data: bytes = b"",
        receiver: Optional[str] = None,
    ) -> Tuple[str, bytes]:
        return (
            "swap",
            AggregatorSwapExtension.encode_params(
                router=router or self.router.address,
                src_token=src or self.asset.address,
                dst_token=dst or self.other.address,
                amount=amount,
                min_out=min_out,
                receiver=receiver or self.wallet.address,
                route_data=route_data,
            ),
        )

    def run(self, steps: Sequence[Tuple[str, bytes]], *, caller: str = OPERATOR) -> ChainResult:
        return self.wallet.run_chain(self.ctx(caller), list(steps))

    def deployed_shares(self) -> int:
        return self.ext_vault.share_token.balance_of(self.wallet.address)


def make_env(*, oracle: Any = None, **overrides: Any) -> Env:
    world = World()
    roles = RoleTable(ADMIN)
    roles.grant(ADMIN, Capability.EXECUTE, OPERATOR)
    roles.grant(ADMIN, Capability.SETTLE, KEEPER)
    roles.grant(ADMIN, Capability.PAUSE, KEEPER)

    config = load_config(env={}, overrides=overrides)
    states = RecordingStates()
    oracle = oracle or AllowAllOracle()
    wallet = MetaWallet(world, capabilities=roles, oracle=oracle, config=config, state_factory=states)

    asset = Token(world, symbol="USDX", decimals=6, minter=ADMIN)
    other = Token(world, symbol="WETHX", decimals=18, minter=ADMIN)
    share = wallet.initialize_vault(world.ctx(ADMIN), asset.address)

    ext_vault = ExternalVault(world, asset.address)
    router = SwapRouter(world, owner=ADMIN)
    router.set_rate(world.ctx(ADMIN), asset.address, other.address, 2, 1)
    router.set_rate(world.ctx(ADMIN), other.address, asset.address, 1, 2)
    other.mint(world.ctx(ADMIN), router.address, ROUTER_INVENTORY)
    asset.mint(world.ctx(ADMIN), router.address, ROUTER_INVENTORY)

    deposit_ext = VaultDepositExtension(world, owner=ADMIN)
    redeem_ext = VaultRedeemExtension(world, owner=ADMIN)
    swap_ext = AggregatorSwapExtension(world, owner=ADMIN)
    swap_ext.allow_router(world.ctx(ADMIN), router.address)

    wallet.install_extension(world.ctx(ADMIN), "deposit", deposit_ext.address)
    wallet.install_extension(world.ctx(ADMIN), "redeem", redeem_ext.address)
    wallet.install_extension(world.ctx(ADMIN), "swap", swap_ext.address)

    return Env(
        world=world,
        roles=roles,
        wallet=wallet,
        asset=asset,
        share=share,
        other=other,
        ext_vault=ext_vault,
        router=router,
        deposit_ext=deposit_ext,
        redeem_ext=redeem_ext,
        swap_ext=swap_ext,
        states=states,
        oracle=oracle,
    )
