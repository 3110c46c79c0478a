"""Prometheus metrics for the trust signal engine.

All metric objects are module-level singletons registered on the default
registry.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from prometheus_client import Counter, Histogram, generate_latest

RISK_ASSESSMENTS_TOTAL = Counter(
    "trust_risk_assessments_total", "Risk assessments computed", ["level"]
)
RISK_WARNINGS_TOTAL = Counter("trust_risk_warnings_total", "Assessments that produced a warning")
VOTE_TOGGLES_TOTAL = Counter("trust_vote_toggles_total", "Local vote toggles applied", ["vote"])
VOTE_COMMITS_TOTAL = Counter(
    "trust_vote_commits_total", "Vote writes attempted by outcome", ["outcome"]
)
VOTE_COALESCED_TOTAL = Counter(
    "trust_vote_coalesced_total", "Debounce windows that settled without a write"
)
VOTE_ROLLBACKS_TOTAL = Counter("trust_vote_rollbacks_total", "Optimistic rollbacks", ["kind"])
VOTE_RECONCILIATIONS_TOTAL = Counter(
    "trust_vote_reconciliations_total", "Post-commit reconciliation results", ["outcome"]
)
VOTE_COMMIT_DURATION_SECONDS = Histogram(
    "trust_vote_commit_duration_seconds", "Vote write latency in seconds"
)
metrics_generate_latest = generate_latest


@contextmanager
def observe_commit_duration() -> Iterator[None]:
    """Observe the wall time of one vote write, including failed ones."""
    start = time.monotonic()
    try:
        yield
    finally:
        VOTE_COMMIT_DURATION_SECONDS.observe(time.monotonic() - start)


__all__ = [
    "RISK_ASSESSMENTS_TOTAL",
    "RISK_WARNINGS_TOTAL",
    "VOTE_COALESCED_TOTAL",
    "VOTE_COMMITS_TOTAL",
    "VOTE_COMMIT_DURATION_SECONDS",
    "VOTE_RECONCILIATIONS_TOTAL",
    "VOTE_ROLLBACKS_TOTAL",
    "VOTE_TOGGLES_TOTAL",
    "metrics_generate_latest",
    "observe_commit_duration",
]
