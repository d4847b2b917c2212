from __future__ import annotations

import pytest

from metawallet.errors import (AlreadyInitialized, CommitmentMismatch,
                               DeltaExceeded, InvalidBps, MissingCapability,
                               UnknownTarget)
from metawallet.tests.helpers import (ADMIN, ALICE, KEEPER, MALLORY, OPERATOR,
                                      make_env)
from metawallet.utils.hash import ZERO32
from metawallet.vault import compute_commitment, strategy_id
from metawallet.wallet import MetaWallet

IDLE = strategy_id("idle")
EXT = strategy_id("external-vault")


def _root(*values: int) -> bytes:
    return compute_commitment([IDLE, EXT][: len(values)], list(values))


def test_settlement_within_the_guard(funded):
    env = funded
    env.wallet.set_max_allowed_delta(env.ctx(ADMIN), 500)
    root = _root(10_499)
    env.wallet.settle_total_assets(env.ctx(KEEPER), 10_499, root)
    assert env.wallet.total_assets() == 10_499
    assert env.wallet.merkle_root() == root


def test_settlement_beyond_the_guard_changes_nothing(funded):
    env = funded
    env.wallet.set_max_allowed_delta(env.ctx(ADMIN), 500)
    with pytest.raises(DeltaExceeded) as ei:
        env.wallet.settle_total_assets(env.ctx(KEEPER), 10_501, _root(10_501))
    assert ei.value.data["delta_bps"] == 501
    assert env.wallet.total_assets() == 10_000
    assert env.wallet.merkle_root() == ZERO32


def test_downward_settlement_is_guarded_too(funded):
    env = funded
    env.wallet.set_max_allowed_delta(env.ctx(ADMIN), 100)
    with pytest.raises(DeltaExceeded):
        env.wallet.settle_total_assets(env.ctx(KEEPER), 9_899, _root(9_899))
    env.wallet.settle_total_assets(env.ctx(KEEPER), 9_900, _root(9_900))
    assert env.wallet.total_assets() == 9_900


def test_zero_limit_disables_the_guard(funded):
    env = funded
    assert env.wallet.max_allowed_delta() == 0
    env.wallet.settle_total_assets(env.ctx(KEEPER), 50_000, _root(50_000))
    assert env.wallet.total_assets() == 50_000


def test_bootstrap_settlement_policy():
    env = make_env(default_max_allowed_delta_bps=500)
    env.wallet.settle_total_assets(env.ctx(KEEPER), 1_000, _root(1_000))
    assert env.wallet.total_assets() == 1_000

    strict = make_env(default_max_allowed_delta_bps=500, allow_bootstrap_settlement=False)
    with pytest.raises(DeltaExceeded):
        strict.wallet.settle_total_assets(strict.ctx(KEEPER), 1_000, _root(1_000))
    strict.wallet.settle_total_assets(strict.ctx(KEEPER), 0, _root(0))
    assert strict.wallet.total_assets() == 0


@pytest.mark.parametrize("bps", [-1, 10_001, True, "5"])
def test_invalid_bps(env, bps):
    with pytest.raises(InvalidBps):
        env.wallet.set_max_allowed_delta(env.ctx(ADMIN), bps)


def test_bps_bounds_are_inclusive(env):
    env.wallet.set_max_allowed_delta(env.ctx(ADMIN), 10_000)
    assert env.wallet.max_allowed_delta() == 10_000
    env.wallet.set_max_allowed_delta(env.ctx(ADMIN), 0)
    assert env.wallet.max_allowed_delta() == 0


def test_settlement_capabilities(funded):
    env = funded
    with pytest.raises(MissingCapability):
        env.wallet.settle_total_assets(env.ctx(OPERATOR), 10_000, _root(10_000))
    with pytest.raises(MissingCapability):
        env.wallet.set_max_allowed_delta(env.ctx(KEEPER), 100)


def test_root_must_be_32_bytes(funded):
    with pytest.raises(CommitmentMismatch):
        funded.wallet.settle_total_assets(funded.ctx(KEEPER), 10_000, b"\x00" * 31)


def test_supplied_breakdown_is_verified(funded):
    env = funded
    root = _root(6_000, 4_100)
    env.wallet.settle_total_assets(env.ctx(KEEPER), 10_100, root, [IDLE, EXT], [6_000, 4_100])
    assert env.wallet.merkle_root() == root
    with pytest.raises(CommitmentMismatch):
        env.wallet.settle_total_assets(env.ctx(KEEPER), 10_200, root, [IDLE, EXT], [6_000, 4_200])
    assert env.wallet.total_assets() == 10_100


def test_enforced_commitment_requires_a_breakdown():
    env = make_env(enforce_commitment=True)
    env.fund(ALICE, 1_000)
    with pytest.raises(CommitmentMismatch):
        env.wallet.settle_total_assets(env.ctx(KEEPER), 1_050, _root(1_050))
    env.wallet.settle_total_assets(env.ctx(KEEPER), 1_050, _root(1_050), [IDLE], [1_050])
    assert env.wallet.total_assets() == 1_050


def test_settlement_moves_share_price(funded):
    env = funded
    before = env.wallet.convert_to_assets(10_000)
    env.wallet.settle_total_assets(env.ctx(KEEPER), 11_000, _root(11_000))
    after = env.wallet.convert_to_assets(10_000)
    assert before == 10_000
    assert abs(after - 11_000) <= 1


def test_share_price_is_per_whole_share(env):
    # empty vault: one whole share is worth one whole asset unit
    assert env.wallet.share_price() == 10**6


def test_vault_initializes_once(env):
    with pytest.raises(AlreadyInitialized):
        env.wallet.initialize_vault(env.ctx(ADMIN), env.asset.address)
    with pytest.raises(MissingCapability):
        env.wallet.initialize_vault(env.ctx(OPERATOR), env.asset.address)


def test_rejected_initialization_deploys_no_share_token(env):
    fresh = MetaWallet(env.world, capabilities=env.roles, config=env.wallet.config)
    deployed = set(env.world._contracts)
    with pytest.raises(AlreadyInitialized):
        env.wallet.initialize_vault(env.ctx(ADMIN), env.asset.address)
    with pytest.raises(UnknownTarget):
        fresh.initialize_vault(env.ctx(ADMIN), MALLORY)
    with pytest.raises(InvalidBps):
        fresh.initialize_vault(env.ctx(ADMIN), env.asset.address, max_allowed_delta=10_001)
    assert set(env.world._contracts) == deployed
    assert not fresh.ledger.initialized
