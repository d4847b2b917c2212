"""
metawallet.config — runtime configuration for the chain engine and vault ledger.

This module centralizes knobs for:
  • Limits (maximum steps per chain, maximum flattened operations per chain)
  • Settlement policy (default delta guard, bootstrap bypass, commitment enforcement)

Configuration may be provided via environment variables. Safe defaults are chosen so
a local run works out of the box.

Environment variables (all optional):
  METAWALLET_MAX_CHAIN_STEPS            -> integer (default: 32)
  METAWALLET_MAX_OPERATIONS             -> integer (default: 256)
  METAWALLET_MAX_ALLOWED_DELTA_BPS      -> integer in [0, 10000] (default: 0 = guard off)
  METAWALLET_ALLOW_BOOTSTRAP_SETTLEMENT -> 0/1/true/false (default: 1)
  METAWALLET_ENFORCE_COMMITMENT         -> 0/1/true/false (default: 0)

Programmatic usage:
    from metawallet.config import get_config
    cfg = get_config()
    if cfg.settlement.enforce_commitment:
        ...
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Dict, Mapping, Optional, Union

BPS_DENOMINATOR = 10_000

# ----------------------------- helpers -------------------------------------


_BOOL_TRUE = {"1", "true", "t", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "f", "no", "n", "off"}


def _bool_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    v = value.strip().lower()
    if v in _BOOL_TRUE:
        return True
    if v in _BOOL_FALSE:
        return False
    return bool(v) if v != "" else default


def _flag(
    overrides: Mapping[str, object],
    env: Mapping[str, str],
    key: str,
    env_key: str,
    default: bool,
) -> bool:
    # Explicit overrides win over the environment.
    if key in overrides:
        v = overrides[key]
        return _bool_env(v, default) if isinstance(v, str) else bool(v)
    return _bool_env(env.get(env_key), default)


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class Limits:
    max_chain_steps: int = 32
    max_operations: int = 256


@dataclass(frozen=True)
class SettlementPolicy:
    # 0 disables the delta guard entirely.
    default_max_allowed_delta_bps: int = 0
    # When the current total is zero the relative delta is undefined; this
    # decides whether such a settlement is allowed at all.
    allow_bootstrap_settlement: bool = True
    # Require a breakdown matching the submitted root on every settlement.
    enforce_commitment: bool = False


@dataclass(frozen=True)
class MetaWalletConfig:
    limits: Limits
    settlement: SettlementPolicy

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


# ------------------------------ loader --------------------------------------


def _validate(limits: Limits, settlement: SettlementPolicy) -> None:
    if limits.max_chain_steps <= 0:
        raise ValueError("max_chain_steps must be > 0")
    if limits.max_operations <= 0:
        raise ValueError("max_operations must be > 0")
    if not (0 <= settlement.default_max_allowed_delta_bps <= BPS_DENOMINATOR):
        raise ValueError("default_max_allowed_delta_bps must be in [0, 10000]")


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, Union[str, int, bool]]] = None,
) -> MetaWalletConfig:
    """
    Build a MetaWalletConfig from environment and optional overrides.

    Args:
        env: mapping to read variables from (default: os.environ)
        overrides: explicit field overrides; keys support:
          'max_chain_steps', 'max_operations', 'default_max_allowed_delta_bps',
          'allow_bootstrap_settlement', 'enforce_commitment'
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    limits = Limits(
        max_chain_steps=int(
            overrides.get("max_chain_steps", env.get("METAWALLET_MAX_CHAIN_STEPS", 32))
        ),
        max_operations=int(
            overrides.get("max_operations", env.get("METAWALLET_MAX_OPERATIONS", 256))
        ),
    )

    settlement = SettlementPolicy(
        default_max_allowed_delta_bps=int(
            overrides.get(
                "default_max_allowed_delta_bps",
                env.get("METAWALLET_MAX_ALLOWED_DELTA_BPS", 0),
            )
        ),
        allow_bootstrap_settlement=_flag(
            overrides, env, "allow_bootstrap_settlement",
            "METAWALLET_ALLOW_BOOTSTRAP_SETTLEMENT", True,
        ),
        enforce_commitment=_flag(
            overrides, env, "enforce_commitment",
            "METAWALLET_ENFORCE_COMMITMENT", False,
        ),
    )
    _validate(limits, settlement)

    return MetaWalletConfig(limits=limits, settlement=settlement)


@lru_cache(maxsize=1)
def get_config() -> MetaWalletConfig:
    """
    Cached global config. Suitable for application bootstraps and module-level consumers.
    """
    return load_config()


# ----------------------------- pretty-print ---------------------------------


def summary(cfg: Optional[MetaWalletConfig] = None) -> str:
    """
    Return a human-friendly one-line summary of the most important knobs.
    """
    cfg = cfg or get_config()
    l = cfg.limits
    s = cfg.settlement
    return (
        "metawallet{"
        f"steps={l.max_chain_steps}, ops={l.max_operations}, "
        f"delta_bps={s.default_max_allowed_delta_bps}, "
        f"bootstrap={int(s.allow_bootstrap_settlement)}, "
        f"enforce_commitment={int(s.enforce_commitment)}"
        "}"
    )


__all__ = [
    "BPS_DENOMINATOR",
    "Limits",
    "SettlementPolicy",
    "MetaWalletConfig",
    "load_config",
    "get_config",
    "summary",
]
