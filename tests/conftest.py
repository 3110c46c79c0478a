from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from trust_signals.config import VoteCommitConfig
from trust_signals.models.risk import FlagReason, FlagTelemetry
from trust_signals.models.votes import VoteableEntity

from tests.fakes import FakeVoteBackend, RecordingNotifier

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def fast_votes() -> VoteCommitConfig:
    return VoteCommitConfig(
        quiet_period_s=0.02, commit_timeout_s=0.5, max_commit_retries=1, retry_backoff_s=0.01
    )


@pytest.fixture
def entity() -> VoteableEntity:
    return VoteableEntity(id="c1", up_count=10, down_count=2)


@pytest.fixture
def backend(entity: VoteableEntity) -> FakeVoteBackend:
    return FakeVoteBackend(entity)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def telemetry() -> FlagTelemetry:
    return FlagTelemetry(
        flag_count=5,
        flags_cumulative_weight=8.0,
        impressions=100,
        first_flag_at=NOW - timedelta(days=3),
        last_flag_at=NOW,
        impressions_since_last_flag=0,
        flag_distribution={FlagReason.phishing: 3, FlagReason.scam: 2},
    )
