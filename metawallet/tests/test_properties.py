from __future__ import annotations

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from metawallet.errors import DataError, DeltaExceeded
from metawallet.runtime.types import USE_PREVIOUS_OUTPUT
from metawallet.tests.helpers import ADMIN, ALICE, BOB, KEEPER, make_env
from metawallet.vault import math as vmath

ROOT = b"\x01" * 32

amounts = st.integers(min_value=1, max_value=10**30)
totals = st.integers(min_value=0, max_value=10**30)

SETTINGS = settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.too_slow])


@given(assets=amounts, total=totals, supply=totals)
@settings(max_examples=300, deadline=None)
def test_conversion_round_trip_never_creates_assets(assets, total, supply):
    shares = vmath.convert_to_shares(assets, total, supply)
    assert vmath.convert_to_assets(shares, total, supply) <= assets


@given(assets=amounts, total=totals, supply=totals)
@settings(max_examples=300, deadline=None)
def test_round_up_variants_bound_the_exact_ratio(assets, total, supply):
    down = vmath.convert_to_shares(assets, total, supply)
    up = vmath.convert_to_shares(assets, total, supply, round_up=True)
    assert down <= up <= down + 1


@given(current=st.integers(min_value=1, max_value=10**24), proposed=totals)
@settings(max_examples=300, deadline=None)
def test_delta_bps_matches_definition(current, proposed):
    bps = vmath.delta_bps(current, proposed)
    assert bps * current <= abs(proposed - current) * 10_000 < (bps + 1) * current


@given(x=st.integers(min_value=1, max_value=10**24))
@SETTINGS
def test_deposit_then_redeem_returns_the_deposit(x):
    env = make_env()
    shares = env.fund(ALICE, x)
    env.wallet.request_redeem(env.ctx(ALICE), shares, ALICE, ALICE)
    env.wallet.fulfill_redeem(env.ctx(KEEPER), ALICE, shares)
    assert env.wallet.redeem(env.ctx(ALICE), shares, ALICE, ALICE) == x
    assert env.wallet.total_assets() == 0
    assert env.share.total_supply() == 0


@given(
    a=st.integers(min_value=1, max_value=10**12),
    b=st.integers(min_value=1, max_value=10**12),
    y=st.integers(min_value=0, max_value=10**12),
)
@SETTINGS
def test_depositors_never_get_more_than_the_total(a, b, y):
    env = make_env()
    sa = env.fund(ALICE, a)
    sb = env.fund(BOB, b)
    env.wallet.settle_total_assets(env.ctx(KEEPER), a + b + y, ROOT)
    va, vb = env.wallet.convert_to_assets(sa), env.wallet.convert_to_assets(sb)
    assert va + vb <= a + b + y
    if a <= b:
        assert va <= vb


@given(
    fund=st.integers(min_value=2, max_value=10**9),
    deploy_pct=st.integers(min_value=0, max_value=99),
    redeem_pct=st.integers(min_value=1, max_value=100),
)
@SETTINGS
def test_max_redeem_is_bounded_by_idle_and_claimable(fund, deploy_pct, redeem_pct):
    env = make_env()
    shares = env.fund(ALICE, fund)
    requested = max(1, shares * redeem_pct // 100)
    env.wallet.request_redeem(env.ctx(ALICE), requested, ALICE, ALICE)
    env.wallet.fulfill_redeem(env.ctx(KEEPER), ALICE, requested)
    deploy = fund * deploy_pct // 100
    if deploy:
        env.run([env.deposit_step(deploy)])
    limit = env.wallet.max_redeem(ALICE)
    assert limit <= env.wallet.claimable_redeem(ALICE)
    assert env.wallet.convert_to_assets(limit) <= env.wallet.total_idle()


@given(
    current=st.integers(min_value=1, max_value=10**12),
    max_bps=st.integers(min_value=1, max_value=10_000),
    proposed=st.integers(min_value=0, max_value=3 * 10**12),
)
@SETTINGS
def test_settlement_accepted_iff_within_limit(current, max_bps, proposed):
    env = make_env()
    env.fund(ALICE, current)
    env.wallet.set_max_allowed_delta(env.ctx(ADMIN), max_bps)
    within = abs(proposed - current) * 10_000 // current <= max_bps
    if within:
        env.wallet.settle_total_assets(env.ctx(KEEPER), proposed, ROOT)
        assert env.wallet.total_assets() == proposed
    else:
        with pytest.raises(DeltaExceeded):
            env.wallet.settle_total_assets(env.ctx(KEEPER), proposed, ROOT)
        assert env.wallet.total_assets() == current


@given(x=st.integers(min_value=1, max_value=10**9), fail=st.booleans())
@SETTINGS
def test_chain_runs_are_all_or_nothing(x, fail):
    env = make_env()
    env.fund(ALICE, x)
    w = env.wallet.address
    before = (env.asset.balance_of(w), env.other.balance_of(w), env.deployed_shares())
    chain = [
        env.deposit_step(x),
        env.redeem_step(USE_PREVIOUS_OUTPUT),
        env.swap_step(USE_PREVIOUS_OUTPUT, route_data=b"fail" if fail else b""),
    ]
    if fail:
        with pytest.raises(DataError):
            env.run(chain)
        assert (env.asset.balance_of(w), env.other.balance_of(w), env.deployed_shares()) == before
    else:
        env.run(chain)
        assert env.other.balance_of(w) == 2 * x
        assert env.deployed_shares() == 0
    assert env.wallet.total_assets() == x
    assert all(s.is_empty() for s in env.states.created)
