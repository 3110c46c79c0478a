"""Canonical vote transition table.

Every vote control (comment, reply, page-level) resolves toggles here so the
optimistic score arithmetic lives in exactly one place.
"""

from __future__ import annotations

from trust_signals.models.votes import VoteResolution, VoteType

_TRANSITIONS: dict[tuple[VoteType, VoteType], VoteResolution] = {
    (VoteType.none, VoteType.upvote): VoteResolution(next=VoteType.upvote, delta=1),
    (VoteType.none, VoteType.downvote): VoteResolution(next=VoteType.downvote, delta=-1),
    (VoteType.upvote, VoteType.upvote): VoteResolution(next=VoteType.none, delta=-1),
    (VoteType.upvote, VoteType.downvote): VoteResolution(next=VoteType.downvote, delta=-2),
    (VoteType.downvote, VoteType.downvote): VoteResolution(next=VoteType.none, delta=1),
    (VoteType.downvote, VoteType.upvote): VoteResolution(next=VoteType.upvote, delta=2),
}


def resolve(current: VoteType, requested: VoteType) -> VoteResolution:
    """Resolve pressing ``requested`` while ``current`` is displayed.

    Pressing the active button clears the vote; pressing the other one flips it.
    """
    if requested == VoteType.none:
        raise ValueError("requested vote must be upvote or downvote")
    return _TRANSITIONS[(VoteType(current), VoteType(requested))]


def vote_delta(current: VoteType, target: VoteType) -> int:
    """Score change between two arbitrary vote values."""
    return target.weight - current.weight


def apply_toggle(score: int, current: VoteType, requested: VoteType) -> tuple[VoteType, int]:
    resolution = resolve(current, requested)
    return resolution.next, score + resolution.delta


__all__ = ["apply_toggle", "resolve", "vote_delta"]
