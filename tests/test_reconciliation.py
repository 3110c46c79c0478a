"""Tests for post-commit reconciliation (last-fetch-wins)."""

from __future__ import annotations

import asyncio

import pytest
from trust_signals.config import VoteCommitConfig
from trust_signals.models.votes import (
    CommitPhase,
    ReconciliationOutcome,
    VoteableEntity,
    VoteFailureKind,
    VoteType,
)
from trust_signals.votes.committer import VoteCommitter
from trust_signals.votes.reconciliation import ReconciliationGate

from tests.fakes import FakeVoteBackend, RecordingNotifier
from tests.helpers import settle, wait_for_phase

pytestmark = pytest.mark.asyncio

UP, DOWN, NONE = VoteType.upvote, VoteType.downvote, VoteType.none


class TestReconciliationGate:
    async def test_matching_vote_needs_no_fetch(self, backend: FakeVoteBackend) -> None:
        gate = ReconciliationGate(backend)
        result = await gate.reconcile("c1", UP, UP)

        assert result.outcome == ReconciliationOutcome.confirmed
        assert result.viewer_vote == UP
        assert backend.entity_fetches == 0
        assert backend.vote_fetches == 0

    async def test_mismatch_refetches_entity_and_vote_once(self, backend: FakeVoteBackend) -> None:
        backend.viewer_vote = DOWN
        gate = ReconciliationGate(backend)
        result = await gate.reconcile("c1", UP, DOWN)

        assert result.outcome == ReconciliationOutcome.refetched
        assert result.viewer_vote == DOWN
        assert result.entity == backend.entity
        assert (backend.entity_fetches, backend.vote_fetches) == (1, 1)

    async def test_fetch_failure_falls_back_to_returned_vote(self, backend: FakeVoteBackend) -> None:
        backend.fetch_error = ConnectionError("offline")
        gate = ReconciliationGate(backend)
        result = await gate.reconcile("c1", UP, NONE)

        assert result.outcome == ReconciliationOutcome.fetch_failed
        assert result.viewer_vote == NONE
        assert result.entity is None

    async def test_fetch_timeout_is_a_fetch_failure(self, backend: FakeVoteBackend) -> None:
        backend.fetch_gate = asyncio.Event()
        gate = ReconciliationGate(backend, fetch_timeout_s=0.02)
        result = await gate.reconcile("c1", UP, DOWN)
        assert result.outcome == ReconciliationOutcome.fetch_failed

    async def test_rejects_non_positive_timeout(self, backend: FakeVoteBackend) -> None:
        with pytest.raises(ValueError):
            ReconciliationGate(backend, fetch_timeout_s=0)


class TestCommitterReconciliation:
    async def test_concurrent_vote_elsewhere_adopts_server_state(
        self, backend: FakeVoteBackend, entity: VoteableEntity, fast_votes: VoteCommitConfig
    ) -> None:
        # Another tab of the same viewer downvoted while our upvote was being written.
        backend.recorded_override = DOWN
        committer = VoteCommitter("c1", backend, config=fast_votes, entity=entity)

        committer.toggle(UP)
        await settle(committer)

        assert backend.commits == [("c1", UP)]
        assert (backend.entity_fetches, backend.vote_fetches) == (1, 1)
        state = committer.state
        assert state.committed_vote == DOWN
        assert state.displayed_vote == DOWN
        assert state.displayed_score == backend.entity.score == 7

    async def test_no_optimistic_math_until_refetch_resolves(
        self, backend: FakeVoteBackend, entity: VoteableEntity, fast_votes: VoteCommitConfig
    ) -> None:
        backend.recorded_override = DOWN
        backend.fetch_gate = asyncio.Event()
        committer = VoteCommitter("c1", backend, config=fast_votes, entity=entity)

        committer.toggle(UP)
        await wait_for_phase(committer, CommitPhase.in_flight)

        async def _fetch_started() -> None:
            while backend.entity_fetches == 0:
                await asyncio.sleep(0.001)

        await asyncio.wait_for(_fetch_started(), timeout=1.0)
        frozen = committer.state
        committer.toggle(DOWN)
        assert committer.state == frozen

        backend.recorded_override = None
        backend.fetch_gate.set()
        await wait_for_phase(committer, CommitPhase.pending)
        # Server said downvote; the queued downvote press therefore clears it.
        assert committer.state.displayed_vote == NONE
        assert committer.state.displayed_score == 8

        await settle(committer)
        assert backend.entity_fetches == 1
        assert backend.commits == [("c1", UP), ("c1", NONE)]

    async def test_refetch_failure_adopts_backend_vote_and_notifies(
        self,
        backend: FakeVoteBackend,
        entity: VoteableEntity,
        fast_votes: VoteCommitConfig,
        notifier: RecordingNotifier,
    ) -> None:
        backend.recorded_override = DOWN
        backend.fetch_error = ConnectionError("offline")
        committer = VoteCommitter("c1", backend, config=fast_votes, notifier=notifier, entity=entity)

        committer.toggle(UP)
        await settle(committer)

        state = committer.state
        assert state.committed_vote == DOWN
        assert state.displayed_score == 7
        assert [f.kind for f in notifier.failures] == [VoteFailureKind.reconciliation_fetch_failed]
