from __future__ import annotations

import math
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# 80% confidence for the Wilson lower bound.
_WILSON_Z = 1.281551565545


def _utc_now() -> datetime:
    return datetime.now(UTC)


class VoteType(StrEnum):
    none = "none"
    upvote = "upvote"
    downvote = "downvote"

    @property
    def weight(self) -> int:
        """Contribution of this vote to ``up_count - down_count``."""
        return _VOTE_WEIGHTS[self]


_VOTE_WEIGHTS: dict[VoteType, int] = {
    VoteType.none: 0,
    VoteType.upvote: 1,
    VoteType.downvote: -1,
}


def controversy_score(upvotes: int, downvotes: int) -> float:
    if upvotes <= 0 or downvotes <= 0:
        return 0.0
    magnitude = upvotes + downvotes
    balance = downvotes / upvotes if upvotes > downvotes else upvotes / downvotes
    return float(magnitude**balance)


def wilson_lower_bound(upvotes: int, downvotes: int) -> float:
    n = upvotes + downvotes
    if n == 0:
        return 0.0
    z = _WILSON_Z
    p = upvotes / n
    left = p + (z * z) / (2 * n)
    right = z * math.sqrt((p * (1 - p)) / n + (z * z) / (4 * n * n))
    under = 1 + (z * z) / n
    return (left - right) / under


class VoteableEntity(BaseModel):
    """A comment, reply or URL as last fetched from the backend."""

    model_config = ConfigDict(frozen=True)

    id: str
    up_count: int = Field(default=0, ge=0)
    down_count: int = Field(default=0, ge=0)

    @property
    def score(self) -> int:
        return self.up_count - self.down_count

    @property
    def controversy(self) -> float:
        return controversy_score(self.up_count, self.down_count)

    @property
    def wilson_score(self) -> float:
        return wilson_lower_bound(self.up_count, self.down_count)


class VoteResolution(BaseModel):
    model_config = ConfigDict(frozen=True)

    next: VoteType
    delta: int


class CommitPhase(StrEnum):
    idle = "idle"
    pending = "pending"
    in_flight = "in_flight"


class ClientVoteState(BaseModel):
    """Viewer-local optimistic vote state for one entity.

    ``confirmed_score`` is the last score the backend vouched for (or the
    optimistic advance of it after a successful write). The displayed score
    is always derivable from it and the two vote values.
    """

    model_config = ConfigDict(frozen=True)

    entity_id: str
    displayed_vote: VoteType = VoteType.none
    displayed_score: int = 0
    committed_vote: VoteType = VoteType.none
    confirmed_score: int = 0
    phase: CommitPhase = CommitPhase.idle

    @model_validator(mode="after")
    def _validate_score_consistency(self) -> ClientVoteState:
        expected = self.confirmed_score + self.displayed_vote.weight - self.committed_vote.weight
        if self.displayed_score != expected:
            raise ValueError(
                "displayed_score must equal confirmed_score plus the committed->displayed delta"
            )
        return self

    @property
    def is_dirty(self) -> bool:
        return self.displayed_vote != self.committed_vote


class ReconciliationOutcome(StrEnum):
    confirmed = "confirmed"
    refetched = "refetched"
    fetch_failed = "fetch_failed"


class ReconciliationResult(BaseModel):
    """What the backend says after a write, when it disagrees with what was sent.

    ``entity`` is only set for ``refetched``; ``viewer_vote`` is always the
    best authoritative vote known.
    """

    model_config = ConfigDict(frozen=True)

    outcome: ReconciliationOutcome
    viewer_vote: VoteType
    entity: VoteableEntity | None = None


class VoteFailureKind(StrEnum):
    network_failure = "network_failure"
    stale_write_timeout = "stale_write_timeout"
    reconciliation_fetch_failed = "reconciliation_fetch_failed"


class VoteFailure(BaseModel):
    """User-visible, non-blocking notice that a vote did not stick."""

    model_config = ConfigDict(frozen=True)

    entity_id: str
    kind: VoteFailureKind
    message: str = ""
    attempted_vote: VoteType
    occurred_at: datetime = Field(default_factory=_utc_now)

    @field_validator("occurred_at")
    @classmethod
    def _ensure_timezone_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
            raise ValueError("occurred_at must be timezone-aware")
        return value


__all__ = [
    "ClientVoteState",
    "CommitPhase",
    "ReconciliationOutcome",
    "ReconciliationResult",
    "VoteFailure",
    "VoteFailureKind",
    "VoteResolution",
    "VoteType",
    "VoteableEntity",
    "controversy_score",
    "wilson_lower_bound",
]
