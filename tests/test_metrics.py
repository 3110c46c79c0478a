"""Tests for trust_signals.core.metrics."""

from __future__ import annotations

import pytest
from prometheus_client import REGISTRY
from trust_signals.config import VoteCommitConfig
from trust_signals.core.metrics import metrics_generate_latest, observe_commit_duration
from trust_signals.errors import TerminalCommitError
from trust_signals.models.risk import FlagTelemetry
from trust_signals.models.votes import VoteType
from trust_signals.risk.assessment import assess_risk
from trust_signals.votes.committer import VoteCommitter

from tests.fakes import FakeVoteBackend
from tests.helpers import settle


def _sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestCommitDuration:
    def test_observed_on_exception(self) -> None:
        before = _sample("trust_vote_commit_duration_seconds_count")
        with pytest.raises(RuntimeError), observe_commit_duration():
            raise RuntimeError("boom")
        assert _sample("trust_vote_commit_duration_seconds_count") == before + 1


class TestCounters:
    def test_unassessed_risk_counted(self) -> None:
        before = _sample("trust_risk_assessments_total", {"level": "unassessed"})
        assess_risk(FlagTelemetry())
        assert _sample("trust_risk_assessments_total", {"level": "unassessed"}) == before + 1

    @pytest.mark.asyncio
    async def test_rollback_counted(self, backend: FakeVoteBackend, fast_votes: VoteCommitConfig) -> None:
        before = _sample("trust_vote_rollbacks_total", {"kind": "network_failure"})
        backend.failures = [TerminalCommitError("nope")]
        committer = VoteCommitter("c1", backend, config=fast_votes)
        committer.toggle(VoteType.upvote)
        await settle(committer)
        assert _sample("trust_vote_rollbacks_total", {"kind": "network_failure"}) == before + 1

    @pytest.mark.asyncio
    async def test_coalesced_window_counted(self, backend: FakeVoteBackend, fast_votes: VoteCommitConfig) -> None:
        before = _sample("trust_vote_coalesced_total")
        committer = VoteCommitter("c1", backend, config=fast_votes)
        committer.toggle(VoteType.upvote)
        committer.toggle(VoteType.upvote)
        await settle(committer)
        assert _sample("trust_vote_coalesced_total") == before + 1


def test_generate_latest_exposes_engine_metrics() -> None:
    output = metrics_generate_latest().decode()
    assert "trust_vote_commits_total" in output
    assert "trust_risk_assessments_total" in output
