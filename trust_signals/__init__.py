"""Trust signal engine: website risk scoring and debounced vote reconciliation."""

from trust_signals.engine import TrustSignalEngine, configure_observability
from trust_signals.models import (
    ClientVoteState,
    FlagReason,
    FlagTelemetry,
    RiskAssessment,
    RiskLevel,
    VoteableEntity,
    VoteType,
)

__all__ = [
    "ClientVoteState",
    "FlagReason",
    "FlagTelemetry",
    "RiskAssessment",
    "RiskLevel",
    "TrustSignalEngine",
    "VoteType",
    "VoteableEntity",
    "configure_observability",
]
