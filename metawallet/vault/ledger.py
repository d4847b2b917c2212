"""
metawallet.vault.ledger — virtual total assets, settlement and pause.

The ledger keeps an accounting total (`total_assets`) that is deliberately
decoupled from the wallet's physical asset balance. It changes only by:

  • the exact asset amount of a deposit/mint (+) or redeem/withdraw (−)
  • a settlement, bounded by the delta guard

Moving idle assets into external strategies and back (chain runs) changes the
physical balance and therefore `total_idle`, never `total_assets`.

Delta guard
-----------
    delta_bps = |new − current| * 10000 // current
A settlement fails with `DeltaExceeded` when `max_allowed_delta != 0` and
`delta_bps > max_allowed_delta`. With `current == 0` the ratio is undefined;
`SettlementPolicy.allow_bootstrap_settlement` decides whether such a
settlement passes (default) or fails unless it keeps the total at zero.

State lives in the world journal under the wallet address, so a failed
settlement leaves nothing behind.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple

from metawallet import metrics
from metawallet.config import BPS_DENOMINATOR, SettlementPolicy
from metawallet.errors import (AlreadyInitialized, CommitmentMismatch,
                               DeltaExceeded, InvalidBps, MetaWalletError,
                               NotInitialized, Paused, UnknownTarget)
from metawallet.logging import get_logger
from metawallet.state.world import World
from metawallet.utils.hash import ZERO32

from . import commitment
from . import math as vmath

log = get_logger(__name__)

K_INIT = b"vault:init"
K_ASSET = b"vault:asset"
K_SHARE = b"vault:share"
K_TOTAL = b"vault:total"
K_ROOT = b"vault:root"
K_PAUSED = b"vault:paused"
K_MAX_DELTA = b"vault:max_delta"
K_ESCROW_ASSETS = b"vault:escrow:assets"
K_ESCROW_SHARES = b"vault:escrow:shares"


class VaultLedger:
    def __init__(self, world: World, address: str, policy: Optional[SettlementPolicy] = None) -> None:
        self.world = world
        self.address = address
        self.policy = policy or SettlementPolicy()

    # ------------------------------------------------------------------ store

    def _get(self, key: bytes, default: Any = None) -> Any:
        return self.world.journal.get(self.address, key, default)

    def _put(self, key: bytes, value: Any) -> None:
        self.world.journal.set(self.address, key, value)

    def _token(self, address: str) -> Any:
        token = self.world.resolve(address)
        if token is None:
            raise UnknownTarget(address)
        return token

    # ------------------------------------------------------------ lifecycle

    def check_setup(self, asset: str, max_allowed_delta: Optional[int] = None) -> int:
        """Everything `initialize` rejects, checked up front; returns the effective bps."""
        if self.initialized:
            raise AlreadyInitialized("vault")
        self._token(asset)
        bps = self.policy.default_max_allowed_delta_bps if max_allowed_delta is None else max_allowed_delta
        self._check_bps(bps)
        return bps

    def initialize(self, asset: str, share_token: str, max_allowed_delta: Optional[int] = None) -> None:
        bps = self.check_setup(asset, max_allowed_delta)
        self._token(share_token)
        self._put(K_ASSET, asset)
        self._put(K_SHARE, share_token)
        self._put(K_MAX_DELTA, bps or None)
        self._put(K_INIT, True)
        log.info("vault initialized", extra={"asset": asset, "share_token": share_token, "max_delta_bps": bps})

    @property
    def initialized(self) -> bool:
        return bool(self._get(K_INIT, False))

    def require_initialized(self) -> None:
        if not self.initialized:
            raise NotInitialized("vault")

    @property
    def asset(self) -> str:
        self.require_initialized()
        return self._get(K_ASSET)

    @property
    def share_token(self) -> str:
        self.require_initialized()
        return self._get(K_SHARE)

    # ----------------------------------------------------------------- reads

    def total_assets(self) -> int:
        return self._get(K_TOTAL, 0)

    def total_supply(self) -> int:
        return self._token(self.share_token).total_supply()

    def physical_balance(self) -> int:
        return self._token(self.asset).balance_of(self.address)

    def escrowed_assets(self) -> int:
        """Assets held for deposit requests that have not been claimed yet."""
        return self._get(K_ESCROW_ASSETS, 0)

    def escrowed_shares(self) -> int:
        """Shares held for redeem requests that have not been claimed yet."""
        return self._get(K_ESCROW_SHARES, 0)

    def total_idle(self) -> int:
        return max(0, self.physical_balance() - self.escrowed_assets())

    def merkle_root(self) -> bytes:
        return self._get(K_ROOT, ZERO32)

    def paused(self) -> bool:
        return bool(self._get(K_PAUSED, False))

    def max_allowed_delta(self) -> int:
        return self._get(K_MAX_DELTA, 0)

    def decimals(self) -> int:
        return self._token(self.share_token).decimals

    def convert_to_shares(self, assets: int) -> int:
        return vmath.convert_to_shares(assets, self.total_assets(), self.total_supply())

    def convert_to_assets(self, shares: int) -> int:
        return vmath.convert_to_assets(shares, self.total_assets(), self.total_supply())

    def convert_to_shares_up(self, assets: int) -> int:
        return vmath.convert_to_shares(assets, self.total_assets(), self.total_supply(), round_up=True)

    def convert_to_assets_up(self, shares: int) -> int:
        return vmath.convert_to_assets(shares, self.total_assets(), self.total_supply(), round_up=True)

    def share_price(self) -> int:
        """Assets per one whole share (10**decimals share units)."""
        return self.convert_to_assets(10 ** self.decimals())

    # ------------------------------------------------------ accounting moves

    def credit(self, assets: int) -> None:
        self._put(K_TOTAL, self.total_assets() + vmath.require_u256(assets, "assets"))

    def debit(self, assets: int) -> None:
        cur = self.total_assets()
        vmath.require_u256(assets, "assets")
        self._put(K_TOTAL, cur - assets if assets <= cur else 0)

    def adjust_escrow(self, *, assets: int = 0, shares: int = 0) -> None:
        if assets:
            self._put(K_ESCROW_ASSETS, (self.escrowed_assets() + assets) or None)
        if shares:
            self._put(K_ESCROW_SHARES, (self.escrowed_shares() + shares) or None)

    # ------------------------------------------------------------ settlement

    def check_delta(self, new_total: int) -> Optional[int]:
        """
        Apply the delta guard to a proposed total. Returns the delta in bps, or
        None when the guard does not apply (guard off, or bootstrap).
        """
        current = self.total_assets()
        max_bps = self.max_allowed_delta()
        if max_bps == 0:
            return None
        if current == 0:
            if self.policy.allow_bootstrap_settlement or new_total == 0:
                return None
            raise DeltaExceeded(current=0, proposed=new_total, delta_bps=None, max_bps=max_bps)
        bps = vmath.delta_bps(current, new_total)
        if bps > max_bps:
            raise DeltaExceeded(current=current, proposed=new_total, delta_bps=bps, max_bps=max_bps)
        return bps

    def settle_total_assets(
        self,
        new_total: int,
        root: bytes,
        breakdown: Optional[Tuple[Sequence[bytes], Sequence[int]]] = None,
    ) -> None:
        """
        Set the accounting total and record the strategy-breakdown root.

        When a breakdown is supplied (or `policy.enforce_commitment` is on) it
        must hash to `root`; otherwise verification is left to
        `verify_breakdown` callers.
        """
        self.require_initialized()
        try:
            vmath.require_u256(new_total, "total")
            if not isinstance(root, (bytes, bytearray)) or len(root) != 32:
                raise CommitmentMismatch("root must be 32 bytes")
            bps = self.check_delta(new_total)
            if breakdown is not None:
                ids, values = breakdown
                if not commitment.verify_breakdown(ids, values, root):
                    raise CommitmentMismatch("breakdown hashes to a different root")
            elif self.policy.enforce_commitment:
                raise CommitmentMismatch("breakdown required")
        except MetaWalletError as e:
            metrics.observe_settlement(accepted=False)
            log.warning("settlement rejected", extra={"proposed": new_total, "error": e.code})
            raise

        previous = self.total_assets()
        self._put(K_TOTAL, new_total or None)
        self._put(K_ROOT, bytes(root))
        metrics.observe_settlement(accepted=True, delta_bps=bps)
        log.info(
            "total assets settled",
            extra={"previous": previous, "total": new_total, "delta_bps": bps, "root": bytes(root)},
        )

    def set_max_allowed_delta(self, bps: int) -> None:
        self._check_bps(bps)
        self._put(K_MAX_DELTA, bps or None)
        log.info("max allowed delta set", extra={"max_delta_bps": bps})

    @staticmethod
    def _check_bps(bps: int) -> None:
        if isinstance(bps, bool) or not isinstance(bps, int) or not (0 <= bps <= BPS_DENOMINATOR):
            raise InvalidBps(bps)

    # ---------------------------------------------------------------- pause

    def pause(self) -> None:
        self._put(K_PAUSED, True)
        log.info("vault paused")

    def unpause(self) -> None:
        self._put(K_PAUSED, None)
        log.info("vault unpaused")

    def require_not_paused(self, op: str) -> None:
        if self.paused():
            raise Paused(op)

    # ------------------------------------------------------- verification

    compute_commitment = staticmethod(commitment.compute_commitment)
    verify_breakdown = staticmethod(commitment.verify_breakdown)


__all__ = ["VaultLedger"]
