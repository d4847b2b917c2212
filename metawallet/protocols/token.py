"""
Fungible token
==============

Balances, allowances and minter-gated supply control, stored in the world
journal. The caller is always `ctx.caller`; there is no ambient sender.

Entry points
------------
transfer(to, amount) -> bool
approve(spender, amount) -> bool
transfer_from(owner, to, amount) -> bool
mint(to, amount) -> bool             # minter only
burn(owner, amount) -> bool          # minter only
move(src, dst, amount) -> bool       # minter only (escrow without allowance)

Views (plain Python)
--------------------
balance_of(account), allowance(owner, spender), total_supply(), decimals
"""

from __future__ import annotations

from typing import Final, Optional

from metawallet.abi import external
from metawallet.errors import (InsufficientAllowance, InsufficientBalance,
                               NotOwner)
from metawallet.state.world import CallContext, Contract, World, slot
from metawallet.vault.math import require_u256

K_TOTAL: Final[bytes] = b"tok:total"
K_MINTER: Final[bytes] = b"tok:minter"


def _k_balance(account: str) -> bytes:
    return slot(b"tok:bal", account)


def _k_allow(owner: str, spender: str) -> bytes:
    return slot(b"tok:allow", owner, spender)


class Token(Contract):
    def __init__(
        self,
        world: World,
        *,
        symbol: str,
        decimals: int = 18,
        minter: Optional[str] = None,
    ) -> None:
        super().__init__(world, label=f"token:{symbol}")
        self.symbol = symbol
        self.decimals = int(decimals)
        if minter is not None:
            self._put(K_MINTER, minter)

    # ------------------------------------------------------------------ views

    def balance_of(self, account: str) -> int:
        return self._get(_k_balance(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._get(_k_allow(owner, spender), 0)

    def total_supply(self) -> int:
        return self._get(K_TOTAL, 0)

    def minter(self) -> Optional[str]:
        return self._get(K_MINTER)

    # -------------------------------------------------------------- mutations

    @external()
    def transfer(self, ctx: CallContext, to: str, amount: int) -> bool:
        self._move(ctx.caller, to, require_u256(amount))
        return True

    @external()
    def approve(self, ctx: CallContext, spender: str, amount: int) -> bool:
        self._put(_k_allow(ctx.caller, spender), require_u256(amount) or None)
        return True

    @external()
    def transfer_from(self, ctx: CallContext, owner: str, to: str, amount: int) -> bool:
        """Spender (`ctx.caller`) moves `amount` from `owner` to `to` using allowance."""
        require_u256(amount)
        if amount == 0:
            return True
        have = self.allowance(owner, ctx.caller)
        if have < amount:
            raise InsufficientAllowance(owner=owner, spender=ctx.caller, have=have, need=amount)
        self._put(_k_allow(owner, ctx.caller), (have - amount) or None)
        self._move(owner, to, amount)
        return True

    @external()
    def mint(self, ctx: CallContext, to: str, amount: int) -> bool:
        self._require_minter(ctx.caller)
        require_u256(amount)
        if amount:
            self._put(K_TOTAL, self.total_supply() + amount)
            self._put(_k_balance(to), self.balance_of(to) + amount)
        return True

    @external()
    def burn(self, ctx: CallContext, owner: str, amount: int) -> bool:
        self._require_minter(ctx.caller)
        require_u256(amount)
        if amount:
            self._debit(owner, amount)
            self._put(K_TOTAL, self.total_supply() - amount)
        return True

    @external()
    def move(self, ctx: CallContext, src: str, dst: str, amount: int) -> bool:
        self._require_minter(ctx.caller)
        self._move(src, dst, require_u256(amount))
        return True

    # -------------------------------------------------------------- internals

    def _require_minter(self, caller: str) -> None:
        if caller != self.minter():
            raise NotOwner(caller)

    def _debit(self, account: str, amount: int) -> None:
        have = self.balance_of(account)
        if have < amount:
            raise InsufficientBalance(account=account, have=have, need=amount)
        self._put(_k_balance(account), (have - amount) or None)

    def _move(self, src: str, dst: str, amount: int) -> None:
        if amount == 0:
            return
        self._debit(src, amount)
        self._put(_k_balance(dst), self.balance_of(dst) + amount)


__all__ = ["Token"]
