"""
metawallet.vault.requests — per-controller deposit and redeem requests.

Deposits
    request_deposit  escrows assets from `owner` and is fulfilled in the same
                     call: the amount becomes claimable for `controller`.
    deposit / mint   consume claimable assets, mint shares, and credit the
                     ledger total by the exact asset amount.

Redeems
    request_redeem   escrows shares from `owner`; the request stays pending.
    fulfill_redeem   moves pending shares to claimable once their asset value
                     fits in idle liquidity.
    redeem/withdraw  consume claimable shares (bounded by `max_redeem`), burn
                     them, pay assets, and debit the ledger total by the exact
                     amount paid.

Pause blocks request_deposit, deposit/mint and redeem/withdraw.
request_redeem and fulfill_redeem stay available.

Escrow invariant: the ledger's escrowed assets equal the sum of pending and
claimable deposit assets, and its escrowed shares equal the sum of pending and
claimable redeem shares, across all controllers.
"""

from __future__ import annotations

from typing import Any

from metawallet import abi
from metawallet.errors import (InsufficientBalance, InsufficientLiquidity,
                               NotOwner, ZeroAmount)
from metawallet.logging import get_logger
from metawallet.state.world import slot

from . import math as vmath
from .ledger import VaultLedger

log = get_logger(__name__)


def _k(kind: str, controller: str) -> bytes:
    return slot(b"requests", kind, controller)


class RequestLedger:
    def __init__(self, ledger: VaultLedger) -> None:
        self.ledger = ledger
        self.world = ledger.world
        self.address = ledger.address

    # ------------------------------------------------------------------ store

    def _amount(self, kind: str, controller: str) -> int:
        return self.world.journal.get(self.address, _k(kind, controller), 0)

    def _adjust(self, kind: str, controller: str, delta: int) -> None:
        new = self._amount(kind, controller) + delta
        self.world.journal.set(self.address, _k(kind, controller), new or None)

    def _invoke(self, target: str, name: str, *args: Any) -> Any:
        return abi.decode_result(self.world.call(self.address, target, abi.encode_call(name, *args)))

    # ------------------------------------------------------------------ reads

    def pending_deposit(self, controller: str) -> int:
        return self._amount("pending_deposit", controller)

    def claimable_deposit(self, controller: str) -> int:
        return self._amount("claimable_deposit", controller)

    def pending_redeem(self, controller: str) -> int:
        return self._amount("pending_redeem", controller)

    def claimable_redeem(self, controller: str) -> int:
        return self._amount("claimable_redeem", controller)

    def max_redeem(self, controller: str) -> int:
        return min(self.ledger.convert_to_shares(self.ledger.total_idle()), self.claimable_redeem(controller))

    # --------------------------------------------------------------- deposits

    def request_deposit(self, caller: str, assets: int, controller: str, owner: str) -> int:
        led = self.ledger
        led.require_not_paused("request_deposit")
        if caller != owner:
            raise NotOwner(caller)
        if vmath.require_u256(assets, "assets") == 0:
            raise ZeroAmount("assets")
        self._invoke(led.asset, "transfer_from", owner, self.address, assets)
        led.adjust_escrow(assets=assets)
        # fulfilled synchronously: straight to claimable
        self._adjust("claimable_deposit", controller, assets)
        log.info("deposit requested", extra={"controller": controller, "assets": assets})
        return assets

    def deposit(self, caller: str, assets: int, receiver: str, controller: str) -> int:
        led = self.ledger
        led.require_not_paused("deposit")
        if caller != controller:
            raise NotOwner(caller)
        vmath.require_u256(assets, "assets")
        shares = led.convert_to_shares(assets)
        return self._claim_deposit(controller, receiver, assets, shares)

    def mint(self, caller: str, shares: int, receiver: str, controller: str) -> int:
        led = self.ledger
        led.require_not_paused("mint")
        if caller != controller:
            raise NotOwner(caller)
        vmath.require_u256(shares, "shares")
        assets = led.convert_to_assets_up(shares)
        self._claim_deposit(controller, receiver, assets, shares)
        return assets

    def _claim_deposit(self, controller: str, receiver: str, assets: int, shares: int) -> int:
        if assets == 0 or shares == 0:
            raise ZeroAmount("shares" if assets else "assets")
        have = self.claimable_deposit(controller)
        if have < assets:
            raise InsufficientBalance(account=controller, have=have, need=assets)
        led = self.ledger
        self._adjust("claimable_deposit", controller, -assets)
        led.adjust_escrow(assets=-assets)
        self._invoke(led.share_token, "mint", receiver, shares)
        led.credit(assets)
        log.info("deposit claimed", extra={"controller": controller, "assets": assets, "shares": shares})
        return shares

    # ---------------------------------------------------------------- redeems

    def request_redeem(self, caller: str, shares: int, controller: str, owner: str) -> int:
        if caller != owner:
            raise NotOwner(caller)
        if vmath.require_u256(shares, "shares") == 0:
            raise ZeroAmount("shares")
        led = self.ledger
        self._invoke(led.share_token, "move", owner, self.address, shares)
        led.adjust_escrow(shares=shares)
        self._adjust("pending_redeem", controller, shares)
        log.info("redeem requested", extra={"controller": controller, "shares": shares})
        return shares

    def fulfill_redeem(self, controller: str, shares: int) -> int:
        if vmath.require_u256(shares, "shares") == 0:
            raise ZeroAmount("shares")
        have = self.pending_redeem(controller)
        if have < shares:
            raise InsufficientBalance(account=controller, have=have, need=shares)
        assets = self.ledger.convert_to_assets(shares)
        idle = self.ledger.total_idle()
        if assets > idle:
            raise InsufficientLiquidity(requested=assets, available=idle)
        self._adjust("pending_redeem", controller, -shares)
        self._adjust("claimable_redeem", controller, shares)
        log.info("redeem fulfilled", extra={"controller": controller, "shares": shares, "assets": assets})
        return assets

    def redeem(self, caller: str, shares: int, receiver: str, controller: str) -> int:
        led = self.ledger
        led.require_not_paused("redeem")
        if caller != controller:
            raise NotOwner(caller)
        vmath.require_u256(shares, "shares")
        assets = led.convert_to_assets(shares)
        self._claim_redeem(controller, receiver, assets, shares)
        return assets

    def withdraw(self, caller: str, assets: int, receiver: str, controller: str) -> int:
        led = self.ledger
        led.require_not_paused("withdraw")
        if caller != controller:
            raise NotOwner(caller)
        vmath.require_u256(assets, "assets")
        shares = led.convert_to_shares_up(assets)
        return self._claim_redeem(controller, receiver, assets, shares)

    def _claim_redeem(self, controller: str, receiver: str, assets: int, shares: int) -> int:
        if assets == 0 or shares == 0:
            raise ZeroAmount("assets" if shares else "shares")
        claimable = self.claimable_redeem(controller)
        if shares > claimable:
            raise InsufficientBalance(account=controller, have=claimable, need=shares)
        limit = self.max_redeem(controller)
        if shares > limit:
            raise InsufficientLiquidity(requested=shares, available=limit)
        led = self.ledger
        self._adjust("claimable_redeem", controller, -shares)
        led.adjust_escrow(shares=-shares)
        self._invoke(led.share_token, "burn", self.address, shares)
        led.debit(assets)
        self._invoke(led.asset, "transfer", receiver, assets)
        log.info("redeem claimed", extra={"controller": controller, "assets": assets, "shares": shares})
        return shares


__all__ = ["RequestLedger"]
