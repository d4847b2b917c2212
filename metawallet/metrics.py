"""
metawallet.metrics — Prometheus counters & histograms for chain runs and settlements.

Design goals
------------
* Centralized registry: consumers can call `get_registry()` and `generate_latest_text()`
  to expose metrics via HTTP.
* Simple helpers: `observe_chain_run(...)`, `observe_settlement(...)` and
  `time_chain_run()` cover the common paths.

Exposed metrics (names are prefixed with `metawallet_`):
  - chain_runs_total{result}        : Counter — chain runs by outcome
  - chain_operations                : Histogram — flattened operations per run
  - chain_run_seconds               : Histogram — wall time of a run
  - settlements_total{result}       : Counter — settlement attempts by outcome
  - settlement_delta_bps            : Histogram — accepted settlement deltas (bps)
  - build_info{version,abi,...}     : Info — see metawallet.version.build_info

Labels:
  - result ∈ {committed, aborted} for runs, {accepted, rejected} for settlements
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
    generate_latest,
)

from .version import build_info

_PREFIX = "metawallet_"

_OPS_BUCKETS = (1, 2, 4, 8, 16, 32, 64, 128, 256)
_RUN_SECONDS_BUCKETS = (0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0)
_DELTA_BPS_BUCKETS = (0, 1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 10000)


# ------------------------------ registry & ctor ------------------------------

_registry: Optional[CollectorRegistry] = None

CHAIN_RUNS_TOTAL: Counter
CHAIN_OPERATIONS: Histogram
CHAIN_RUN_SECONDS: Histogram
SETTLEMENTS_TOTAL: Counter
SETTLEMENT_DELTA_BPS: Histogram
BUILD_INFO: Info


def set_registry(registry: CollectorRegistry) -> None:
    """
    Inject a custom CollectorRegistry (e.g., an app-global one).
    Must be called before the first metric is recorded.
    """
    global _registry
    if _registry is not None:
        return
    _registry = registry
    _build_metrics(registry)


def get_registry() -> CollectorRegistry:
    """Return the metrics registry, creating one on first use."""
    global _registry
    if _registry is None:
        _registry = CollectorRegistry()
        _build_metrics(_registry)
    return _registry


def _build_metrics(reg: CollectorRegistry) -> None:
    global CHAIN_RUNS_TOTAL, CHAIN_OPERATIONS, CHAIN_RUN_SECONDS
    global SETTLEMENTS_TOTAL, SETTLEMENT_DELTA_BPS, BUILD_INFO

    CHAIN_RUNS_TOTAL = Counter(
        _PREFIX + "chain_runs_total",
        "Chain runs executed (by result).",
        labelnames=("result",),
        registry=reg,
    )
    CHAIN_OPERATIONS = Histogram(
        _PREFIX + "chain_operations",
        "Flattened operations per chain run.",
        buckets=_OPS_BUCKETS,
        registry=reg,
    )
    CHAIN_RUN_SECONDS = Histogram(
        _PREFIX + "chain_run_seconds",
        "Wall time of a chain run end-to-end.",
        buckets=_RUN_SECONDS_BUCKETS,
        registry=reg,
    )
    SETTLEMENTS_TOTAL = Counter(
        _PREFIX + "settlements_total",
        "Settlement attempts (by result).",
        labelnames=("result",),
        registry=reg,
    )
    SETTLEMENT_DELTA_BPS = Histogram(
        _PREFIX + "settlement_delta_bps",
        "Relative move of accepted settlements in basis points.",
        buckets=_DELTA_BPS_BUCKETS,
        registry=reg,
    )
    BUILD_INFO = Info(
        _PREFIX + "build",
        "Release, ABI version and source revision of the running package.",
        registry=reg,
    )
    BUILD_INFO.info(build_info())


# ------------------------------ helpers -------------------------------------


def observe_chain_run(*, committed: bool, operations: int) -> None:
    """Record the outcome and size of one chain run."""
    get_registry()
    CHAIN_RUNS_TOTAL.labels(result="committed" if committed else "aborted").inc()
    if operations >= 0:
        CHAIN_OPERATIONS.observe(float(operations))


def observe_settlement(*, accepted: bool, delta_bps: Optional[int] = None) -> None:
    """Record a settlement attempt; `delta_bps` is None when the guard was bypassed."""
    get_registry()
    SETTLEMENTS_TOTAL.labels(result="accepted" if accepted else "rejected").inc()
    if accepted and delta_bps is not None:
        SETTLEMENT_DELTA_BPS.observe(float(delta_bps))


@dataclass
class _TimerCtx:
    h: Histogram
    t0: float

    def stop(self) -> float:
        dt = max(0.0, time.perf_counter() - self.t0)
        self.h.observe(dt)
        return dt

    def __enter__(self) -> "_TimerCtx":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


def time_chain_run() -> _TimerCtx:
    """
    Context manager timing a chain run.

        with time_chain_run():
            executor.run(plan, caller=operator)
    """
    get_registry()
    return _TimerCtx(h=CHAIN_RUN_SECONDS, t0=time.perf_counter())


# ------------------------------ exposition ----------------------------------


def generate_latest_text() -> bytes:
    """Return Prometheus exposition format for the current registry."""
    return generate_latest(get_registry())


__all__ = [
    "get_registry",
    "set_registry",
    "generate_latest_text",
    "observe_chain_run",
    "observe_settlement",
    "time_chain_run",
    "CONTENT_TYPE_LATEST",
]
