from __future__ import annotations

import pytest

from metawallet import abi
from metawallet.access import AllowListOracle
from metawallet.errors import (ContextActive, DataError, MissingCapability,
                               OperationDenied, OutputBelowMinimum)
from metawallet.runtime.types import USE_PREVIOUS_OUTPUT
from metawallet.tests.helpers import ALICE, OPERATOR, make_env


def _snapshot(env):
    w = env.wallet.address
    return (
        env.asset.balance_of(w),
        env.other.balance_of(w),
        env.deployed_shares(),
        env.asset.allowance(w, env.ext_vault.address),
        env.asset.allowance(w, env.router.address),
        env.wallet.total_assets(),
        env.world.journal.depth(),
    )


def test_successful_run_commits_and_reports_results(funded):
    env = funded
    result = env.run([env.deposit_step(500)])
    assert len(result.results) == len(result.operations) == 5
    assert result.decoded()[-1] == 500
    assert result.trace_id
    assert env.deployed_shares() == 500
    assert env.asset.balance_of(env.wallet.address) == 9_500
    assert env.world.journal.depth() == 1


def test_failure_in_a_later_step_reverts_everything(funded):
    env = funded
    before = _snapshot(env)
    with pytest.raises(DataError) as ei:
        env.run([env.deposit_step(500), env.swap_step(100, route_data=b"fail")])
    assert ei.value.code == "ROUTE_FAILED"
    assert _snapshot(env) == before


def test_threshold_failure_reverts_everything(funded):
    env = funded
    before = _snapshot(env)
    with pytest.raises(OutputBelowMinimum):
        env.run([env.deposit_step(500), env.swap_step(100, min_out=10**9)])
    assert _snapshot(env) == before


def test_contexts_are_empty_after_success_and_failure(funded):
    env = funded
    env.run([env.deposit_step(500), env.redeem_step(USE_PREVIOUS_OUTPUT)])
    with pytest.raises(DataError):
        env.run([env.deposit_step(500), env.swap_step(1, route_data=b"fail")])
    assert len(env.states.created) == 2
    assert all(s.is_empty() for s in env.states.created)


def test_each_run_gets_a_fresh_state(funded):
    env = funded
    env.run([env.deposit_step(100)])
    env.run([env.deposit_step(100)])
    first, second = env.states.created
    assert first is not second


def test_execute_requires_capability(funded):
    with pytest.raises(MissingCapability):
        funded.run([funded.deposit_step(100)], caller=ALICE)


def test_execute_entry_point_through_world_call(funded):
    env = funded
    payload = abi.encode_call("execute", [list(env.deposit_step(250))])
    raw = env.world.call(OPERATOR, env.wallet.address, payload)
    results = abi.decode_result(raw)
    assert len(results) == 5 and all(isinstance(r, bytes) for r in results)
    assert abi.decode_result(results[-1]) == 250


def test_extension_entry_points_need_a_run(funded):
    env = funded
    with pytest.raises(ContextActive):
        env.deposit_ext.settle_output(env.ctx(env.wallet.address), 0)


def _oracle_for_deposit(env, oracle):
    oracle.allow(env.asset.address, "approve", lambda args: args[0] == env.ext_vault.address)
    oracle.allow(env.ext_vault.address, "deposit", lambda args: args[1] == env.wallet.address)
    oracle.allow(env.deposit_ext.address, "snapshot_balance")
    oracle.allow(env.deposit_ext.address, "settle_output")


def test_oracle_denial_aborts_with_operation_index():
    oracle = AllowListOracle()
    env = make_env(oracle=oracle)
    env.fund(ALICE, 1_000)
    _oracle_for_deposit(env, oracle)
    oracle.deny(env.ext_vault.address, "deposit")
    with pytest.raises(OperationDenied) as ei:
        env.run([env.deposit_step(100)])
    assert ei.value.data["index"] == 2
    assert ei.value.data["target"] == env.ext_vault.address
    assert env.deployed_shares() == 0


def test_oracle_predicate_checks_arguments():
    oracle = AllowListOracle()
    env = make_env(oracle=oracle)
    env.fund(ALICE, 1_000)
    _oracle_for_deposit(env, oracle)
    env.run([env.deposit_step(100)])
    with pytest.raises(OperationDenied):
        env.run([env.deposit_step(100, receiver=ALICE)])
    assert env.ext_vault.share_token.balance_of(ALICE) == 0


def test_oracle_vets_calls_forwarded_by_extensions():
    oracle = AllowListOracle()
    env = make_env(oracle=oracle)
    env.fund(ALICE, 1_000)
    _oracle_for_deposit(env, oracle)
    for name in ("resolve_dynamic_amount", "snapshot_balance", "redeem_resolved", "settle_output"):
        oracle.allow(env.redeem_ext.address, name)

    chain = [env.deposit_step(100), env.redeem_step(USE_PREVIOUS_OUTPUT)]
    with pytest.raises(OperationDenied) as ei:
        env.run(chain)
    assert ei.value.data["target"] == env.ext_vault.address
    assert ei.value.data["selector"] == abi.selector("redeem").hex()
    assert env.deployed_shares() == 0

    oracle.allow(env.ext_vault.address, "redeem")
    env.run(chain)
    assert env.deployed_shares() == 0
    assert env.asset.balance_of(env.wallet.address) == 1_000
