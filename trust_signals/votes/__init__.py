from trust_signals.votes.committer import VoteCommitter
from trust_signals.votes.reconciliation import ReconciliationGate
from trust_signals.votes.registry import VoteStateRegistry
from trust_signals.votes.resolver import apply_toggle, resolve, vote_delta

__all__ = [
    "ReconciliationGate",
    "VoteCommitter",
    "VoteStateRegistry",
    "apply_toggle",
    "resolve",
    "vote_delta",
]
