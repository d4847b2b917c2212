"""
Tokenized yield vault over a single asset.

Shares are a `Token` minted by the vault. The vault's total assets are its
asset-token balance, so yield is simulated by minting asset directly to the
vault address. Conversions use the same virtual-offset math as the MetaWallet
ledger (`metawallet.vault.math`).
"""

from __future__ import annotations

from typing import Optional

from metawallet.abi import external
from metawallet.errors import NotOwner, UnknownTarget, ZeroAmount
from metawallet.state.world import CallContext, Contract, World
from metawallet.vault import math as vmath

from .token import Token


class ExternalVault(Contract):
    def __init__(self, world: World, asset: str, *, symbol: Optional[str] = None) -> None:
        super().__init__(world, label="external-vault")
        token = world.resolve(asset)
        if not isinstance(token, Token):
            raise UnknownTarget(asset)
        self.asset = asset
        self.share_token = Token(
            world, symbol=symbol or f"v{token.symbol}", decimals=token.decimals, minter=self.address
        )

    @property
    def shares(self) -> Token:
        return self.share_token

    # ------------------------------------------------------------------ views

    def total_assets(self) -> int:
        return self.world.resolve(self.asset).balance_of(self.address)

    def convert_to_shares(self, assets: int) -> int:
        return vmath.convert_to_shares(assets, self.total_assets(), self.share_token.total_supply())

    def convert_to_assets(self, shares: int) -> int:
        return vmath.convert_to_assets(shares, self.total_assets(), self.share_token.total_supply())

    # -------------------------------------------------------------- mutations

    @external()
    def deposit(self, ctx: CallContext, assets: int, receiver: str) -> int:
        """Pull `assets` from the caller (allowance required) and mint shares to `receiver`."""
        vmath.require_u256(assets, "assets")
        shares = self.convert_to_shares(assets)
        if shares == 0:
            raise ZeroAmount("shares")
        self._invoke(self.asset, "transfer_from", ctx.caller, self.address, assets)
        self._invoke(self.share_token.address, "mint", receiver, shares)
        return shares

    @external()
    def redeem(self, ctx: CallContext, shares: int, receiver: str, owner: str) -> int:
        """Burn `shares` of `owner` (who must be the caller) and pay assets to `receiver`."""
        if owner != ctx.caller:
            raise NotOwner(ctx.caller)
        vmath.require_u256(shares, "shares")
        assets = self.convert_to_assets(shares)
        if assets == 0:
            raise ZeroAmount("assets")
        self._invoke(self.share_token.address, "burn", owner, shares)
        self._invoke(self.asset, "transfer", receiver, assets)
        return assets


__all__ = ["ExternalVault"]
