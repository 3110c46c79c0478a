"""Validation and derived-field tests for the vote models."""

from __future__ import annotations

from datetime import datetime

import pytest
from pydantic import ValidationError
from trust_signals.models.votes import (
    ClientVoteState,
    VoteableEntity,
    VoteFailure,
    VoteFailureKind,
    VoteType,
    controversy_score,
    wilson_lower_bound,
)


class TestVoteableEntity:
    def test_score_is_up_minus_down(self) -> None:
        assert VoteableEntity(id="r1", up_count=3, down_count=5).score == -2

    def test_counts_non_negative(self) -> None:
        with pytest.raises(ValidationError):
            VoteableEntity(id="r1", up_count=-1)

    def test_ranking_signals(self) -> None:
        entity = VoteableEntity(id="r1", up_count=10, down_count=10)
        assert entity.controversy == pytest.approx(20.0)
        assert 0.0 < entity.wilson_score < 0.5


class TestRankingFunctions:
    def test_controversy_needs_both_sides(self) -> None:
        assert controversy_score(10, 0) == 0.0
        assert controversy_score(0, 4) == 0.0

    def test_controversy_balanced_beats_lopsided(self) -> None:
        assert controversy_score(5, 5) > controversy_score(9, 1)

    def test_wilson_no_votes(self) -> None:
        assert wilson_lower_bound(0, 0) == 0.0

    def test_wilson_prefers_more_evidence(self) -> None:
        assert wilson_lower_bound(10, 1) > wilson_lower_bound(1, 0)


class TestClientVoteState:
    def test_consistent_state_accepted(self) -> None:
        state = ClientVoteState(
            entity_id="c1",
            displayed_vote=VoteType.downvote,
            displayed_score=5,
            committed_vote=VoteType.upvote,
            confirmed_score=7,
        )
        assert state.is_dirty

    def test_inconsistent_score_rejected(self) -> None:
        with pytest.raises(ValidationError, match="displayed_score"):
            ClientVoteState(
                entity_id="c1",
                displayed_vote=VoteType.upvote,
                displayed_score=5,
                committed_vote=VoteType.none,
                confirmed_score=5,
            )


class TestVoteFailure:
    def test_naive_timestamp_rejected(self) -> None:
        with pytest.raises(ValidationError, match="timezone-aware"):
            VoteFailure(
                entity_id="c1",
                kind=VoteFailureKind.network_failure,
                attempted_vote=VoteType.upvote,
                occurred_at=datetime(2026, 3, 1),
            )
