from __future__ import annotations

import pytest

from metawallet.errors import (InsufficientBalance, InsufficientLiquidity,
                               InvalidAmount, MissingCapability, NotOwner,
                               Paused, ZeroAmount)
from metawallet.tests.helpers import ALICE, BOB, KEEPER, OPERATOR


def _escrow_matches_books(env, *controllers):
    led = env.wallet.ledger
    assets = sum(env.wallet.pending_deposit(c) + env.wallet.claimable_deposit(c) for c in controllers)
    shares = sum(env.wallet.pending_redeem(c) + env.wallet.claimable_redeem(c) for c in controllers)
    return led.escrowed_assets() == assets and led.escrowed_shares() == shares


def test_deposit_request_is_claimable_immediately(env):
    env.mint_asset(ALICE, 1_000)
    env.asset.approve(env.ctx(ALICE), env.wallet.address, 1_000)
    env.wallet.request_deposit(env.ctx(ALICE), 1_000, ALICE, ALICE)
    assert env.wallet.pending_deposit(ALICE) == 0
    assert env.wallet.claimable_deposit(ALICE) == 1_000
    assert env.wallet.total_assets() == 0
    assert env.wallet.total_idle() == 0
    assert _escrow_matches_books(env, ALICE)

    shares = env.wallet.deposit(env.ctx(ALICE), 400, BOB, ALICE)
    assert shares == 400
    assert env.share.balance_of(BOB) == 400
    assert env.wallet.claimable_deposit(ALICE) == 600
    assert env.wallet.total_assets() == 400
    assert _escrow_matches_books(env, ALICE)


def test_mint_charges_assets_rounded_up(funded):
    env = funded
    env.wallet.settle_total_assets(env.ctx(KEEPER), 10_500, b"\x11" * 32)
    env.mint_asset(BOB, 1_000)
    env.asset.approve(env.ctx(BOB), env.wallet.address, 1_000)
    env.wallet.request_deposit(env.ctx(BOB), 1_000, BOB, BOB)
    assets = env.wallet.mint(env.ctx(BOB), 100, BOB, BOB)
    # 100 * 10501 / 10001 = 104.99.. -> 105
    assert assets == 105
    assert env.share.balance_of(BOB) == 100
    assert env.wallet.claimable_deposit(BOB) == 895


def test_request_rules(env):
    env.mint_asset(ALICE, 1_000)
    env.asset.approve(env.ctx(ALICE), env.wallet.address, 1_000)
    with pytest.raises(NotOwner):
        env.wallet.request_deposit(env.ctx(BOB), 1_000, ALICE, ALICE)
    with pytest.raises(ZeroAmount):
        env.wallet.request_deposit(env.ctx(ALICE), 0, ALICE, ALICE)
    with pytest.raises(InvalidAmount):
        env.wallet.request_deposit(env.ctx(ALICE), -5, ALICE, ALICE)
    env.wallet.request_deposit(env.ctx(ALICE), 1_000, ALICE, ALICE)
    with pytest.raises(NotOwner):
        env.wallet.deposit(env.ctx(BOB), 1_000, BOB, ALICE)
    with pytest.raises(InsufficientBalance):
        env.wallet.deposit(env.ctx(ALICE), 1_001, ALICE, ALICE)


def test_redeem_lifecycle(funded):
    env = funded
    env.wallet.request_redeem(env.ctx(ALICE), 4_000, ALICE, ALICE)
    assert env.wallet.pending_redeem(ALICE) == 4_000
    assert env.share.balance_of(ALICE) == 6_000
    assert env.wallet.max_redeem(ALICE) == 0
    assert _escrow_matches_books(env, ALICE)

    assert env.wallet.fulfill_redeem(env.ctx(KEEPER), ALICE, 4_000) == 4_000
    assert env.wallet.claimable_redeem(ALICE) == 4_000
    assert env.wallet.max_redeem(ALICE) == 4_000

    assets = env.wallet.redeem(env.ctx(ALICE), 4_000, ALICE, ALICE)
    assert assets == 4_000
    assert env.asset.balance_of(ALICE) == 4_000
    assert env.wallet.total_assets() == 6_000
    assert env.share.total_supply() == 6_000
    assert _escrow_matches_books(env, ALICE)


def test_withdraw_burns_shares_rounded_up(funded):
    env = funded
    env.wallet.settle_total_assets(env.ctx(KEEPER), 10_500, b"\x22" * 32)
    env.wallet.request_redeem(env.ctx(ALICE), 1_000, ALICE, ALICE)
    env.wallet.fulfill_redeem(env.ctx(KEEPER), ALICE, 1_000)
    shares = env.wallet.withdraw(env.ctx(ALICE), 104, ALICE, ALICE)
    # 104 * 10001 / 10501 = 99.04.. -> 100
    assert shares == 100
    assert env.asset.balance_of(ALICE) == 104
    assert env.wallet.claimable_redeem(ALICE) == 900


def test_fulfill_needs_idle_liquidity(funded):
    env = funded
    env.run([env.deposit_step(9_000)])
    assert env.wallet.total_idle() == 1_000
    env.wallet.request_redeem(env.ctx(ALICE), 4_000, ALICE, ALICE)
    with pytest.raises(InsufficientLiquidity):
        env.wallet.fulfill_redeem(env.ctx(KEEPER), ALICE, 4_000)
    env.wallet.fulfill_redeem(env.ctx(KEEPER), ALICE, 1_000)
    with pytest.raises(MissingCapability):
        env.wallet.fulfill_redeem(env.ctx(OPERATOR), ALICE, 1_000)


def test_max_redeem_tracks_idle_after_deployment(funded):
    env = funded
    env.wallet.request_redeem(env.ctx(ALICE), 4_000, ALICE, ALICE)
    env.wallet.fulfill_redeem(env.ctx(KEEPER), ALICE, 4_000)
    env.run([env.deposit_step(8_000)])
    assert env.wallet.max_redeem(ALICE) == 2_000
    with pytest.raises(InsufficientLiquidity):
        env.wallet.redeem(env.ctx(ALICE), 4_000, ALICE, ALICE)
    env.wallet.redeem(env.ctx(ALICE), 2_000, ALICE, ALICE)
    assert env.wallet.claimable_redeem(ALICE) == 2_000


def test_pause_blocks_flows_but_not_redeem_requests(funded):
    env = funded
    env.mint_asset(BOB, 100)
    env.asset.approve(env.ctx(BOB), env.wallet.address, 100)
    env.wallet.request_redeem(env.ctx(ALICE), 1_000, ALICE, ALICE)
    env.wallet.fulfill_redeem(env.ctx(KEEPER), ALICE, 1_000)

    env.wallet.pause(env.ctx(KEEPER))
    assert env.wallet.paused()
    with pytest.raises(Paused):
        env.wallet.request_deposit(env.ctx(BOB), 100, BOB, BOB)
    with pytest.raises(Paused):
        env.wallet.deposit(env.ctx(ALICE), 1, ALICE, ALICE)
    with pytest.raises(Paused):
        env.wallet.mint(env.ctx(ALICE), 1, ALICE, ALICE)
    with pytest.raises(Paused):
        env.wallet.redeem(env.ctx(ALICE), 1_000, ALICE, ALICE)
    with pytest.raises(Paused):
        env.wallet.withdraw(env.ctx(ALICE), 1, ALICE, ALICE)

    env.wallet.request_redeem(env.ctx(ALICE), 500, ALICE, ALICE)
    env.wallet.fulfill_redeem(env.ctx(KEEPER), ALICE, 500)
    env.wallet.settle_total_assets(env.ctx(KEEPER), 10_000, b"\x33" * 32)

    env.wallet.unpause(env.ctx(KEEPER))
    assert env.wallet.redeem(env.ctx(ALICE), 1_500, ALICE, ALICE) == 1_500


def test_pause_requires_capability(env):
    with pytest.raises(MissingCapability):
        env.wallet.pause(env.ctx(OPERATOR))
    assert not env.wallet.paused()
