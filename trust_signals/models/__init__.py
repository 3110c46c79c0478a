from trust_signals.models.risk import (
    FLAG_REASON_WEIGHTS,
    RISK_LEVEL_VALUES,
    FlagReason,
    FlagTelemetry,
    RiskAssessment,
    RiskLevel,
    flag_weight,
)
from trust_signals.models.votes import (
    ClientVoteState,
    CommitPhase,
    ReconciliationOutcome,
    ReconciliationResult,
    VoteableEntity,
    VoteFailure,
    VoteFailureKind,
    VoteResolution,
    VoteType,
)

__all__ = [
    "FLAG_REASON_WEIGHTS",
    "RISK_LEVEL_VALUES",
    "ClientVoteState",
    "CommitPhase",
    "ReconciliationOutcome",
    "ReconciliationResult",
    "FlagReason",
    "FlagTelemetry",
    "RiskAssessment",
    "RiskLevel",
    "VoteFailure",
    "VoteFailureKind",
    "VoteResolution",
    "VoteType",
    "VoteableEntity",
    "flag_weight",
]
