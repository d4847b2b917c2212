from __future__ import annotations

import pytest

from metawallet.tests.helpers import ALICE, Env, make_env


@pytest.fixture
def env() -> Env:
    return make_env()


@pytest.fixture
def funded(env: Env) -> Env:
    """Env with ALICE holding 10,000 shares backed by 10,000 idle assets."""
    env.fund(ALICE, 10_000)
    return env
