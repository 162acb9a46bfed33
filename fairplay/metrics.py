"""
Prometheus metrics for the session engine.

This module defines counters and a histogram for the session lifecycle:
  • session_starts_total      — start() attempts per outcome
  • moves_total               — locally decided moves per outcome (win/loss)
  • settlements_total         — settle() attempts per outcome
  • recoveries_total          — recover() attempts per outcome
  • balance_refresh_failures_total — swallowed balance read failures
  • settle_seconds            — time from settle() submission to confirmation

Design notes
------------
- Label cardinality is intentionally low: only an `outcome` label with a
  small, finite vocabulary. No per-account labels.

Usage
-----
    from fairplay.metrics import METRICS

    METRICS.record_start("committed")
    METRICS.record_move(win=True)
    with METRICS.settle_timer():
        await ledger.settle_batch(...)

If you need a custom Prometheus registry or different namespace/subsystem,
construct your own `Metrics` instance.
"""

from __future__ import annotations

from contextlib import contextmanager
from time import perf_counter
from typing import Iterable

from prometheus_client import REGISTRY, Counter, Histogram

# --------- Vocabularies (kept small for bounded cardinality) ---------

_START_OUTCOMES = (
    "committed",          # commitment confirmed by the ledger
    "awaiting_funds",     # balance below the first wager
    "house_unset",        # ledger has no house commitment
    "already_active",     # live session exists (locally or on the ledger)
    "rejected",           # ledger reverted the commitment
    "error",              # transport/other failure, outcome unknown
)

_SETTLE_OUTCOMES = (
    "settled",
    "house_mismatch",     # house secret does not open the captured commitment
    "rejected",
    "error",
)

_RECOVER_OUTCOMES = (
    "resumed",            # persisted secret matched the ledger commitment
    "settled",            # an interrupted settle_batch had landed
    "manual",             # operator/player supplied secret accepted
    "stale",              # persisted record without a live ledger session
    "needs_secret",       # live ledger session but no usable secret
    "nothing",            # no record and no live session
    "invalid",            # supplied secret rejected
)

# Settlement confirmation latency buckets (seconds)
_SETTLE_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)


class Metrics:
    """
    Container for all session-engine Prometheus instruments.

    Args:
        namespace: Prometheus metric namespace (prefix).
        subsystem: Prometheus metric subsystem (inserted between namespace and name).
        registry:  Prometheus registry to register the metrics with.
    """

    def __init__(
        self,
        *,
        namespace: str = "fairplay",
        subsystem: str = "session",
        registry=REGISTRY,
        settle_buckets: Iterable[float] = _SETTLE_BUCKETS,
    ) -> None:
        common = dict(namespace=namespace, subsystem=subsystem, registry=registry)
        self.session_starts_total = Counter(
            "starts_total",
            "Session start attempts, labeled by outcome.",
            labelnames=("outcome",),
            **common,
        )
        self.moves_total = Counter(
            "moves_total",
            "Locally decided moves, labeled by outcome.",
            labelnames=("outcome",),
            **common,
        )
        self.settlements_total = Counter(
            "settlements_total",
            "Settlement attempts, labeled by outcome.",
            labelnames=("outcome",),
            **common,
        )
        self.recoveries_total = Counter(
            "recoveries_total",
            "Recovery attempts, labeled by outcome.",
            labelnames=("outcome",),
            **common,
        )
        self.balance_refresh_failures_total = Counter(
            "balance_refresh_failures_total",
            "Ledger balance reads that failed and kept the previous value.",
            **common,
        )
        self.settle_seconds = Histogram(
            "settle_seconds",
            "Time spent waiting for settle_batch confirmation (seconds).",
            buckets=tuple(settle_buckets),
            **common,
        )

    # ----- Recording helpers -------------------------------------------------

    def record_start(self, outcome: str) -> None:
        if outcome not in _START_OUTCOMES:
            outcome = "error"
        self.session_starts_total.labels(outcome=outcome).inc()

    def record_move(self, *, win: bool) -> None:
        self.moves_total.labels(outcome="win" if win else "loss").inc()

    def record_settle(self, outcome: str) -> None:
        if outcome not in _SETTLE_OUTCOMES:
            outcome = "error"
        self.settlements_total.labels(outcome=outcome).inc()

    def record_recover(self, outcome: str) -> None:
        if outcome not in _RECOVER_OUTCOMES:
            outcome = "invalid"
        self.recoveries_total.labels(outcome=outcome).inc()

    def record_refresh_failure(self) -> None:
        self.balance_refresh_failures_total.inc()

    # ----- Context managers --------------------------------------------------

    @contextmanager
    def settle_timer(self):
        """
        Context manager to time a settlement submission.

            with METRICS.settle_timer():
                await ledger.settle_batch(...)
        """
        start = perf_counter()
        try:
            yield
        finally:
            self.settle_seconds.observe(perf_counter() - start)


# Singleton used by most components
METRICS = Metrics()

__all__ = [
    "Metrics",
    "METRICS",
    "_START_OUTCOMES",
    "_SETTLE_OUTCOMES",
    "_RECOVER_OUTCOMES",
]
