from __future__ import annotations

from trust_signals.config import RiskThresholds
from trust_signals.models.risk import RiskAssessment, RiskLevel

DEFAULT_THRESHOLDS = RiskThresholds()


def classify(score: float, thresholds: RiskThresholds | None = None) -> RiskLevel:
    """Map a [0, 1] score onto the risk staircase. Out-of-range input is clamped."""
    cuts = thresholds or DEFAULT_THRESHOLDS
    clamped = max(0.0, min(score, 1.0))
    for cut, level in cuts.cut_points():
        if clamped >= cut:
            return level
    return RiskLevel.none


def meets_threshold(current: RiskLevel, threshold: RiskLevel) -> bool:
    return current.ordinal >= threshold.ordinal


def should_warn(
    assessment: RiskAssessment,
    threshold: RiskLevel,
    *,
    enabled: bool = True,
) -> bool:
    """The one predicate every surface uses to decide whether to show a warning.

    Unassessed telemetry and ``RiskLevel.none`` never warn, even when the
    viewer set their threshold to ``none``.
    """
    if not enabled or not assessment.assessed:
        return False
    if assessment.level == RiskLevel.none:
        return False
    return meets_threshold(assessment.level, threshold)


__all__ = ["DEFAULT_THRESHOLDS", "classify", "meets_threshold", "should_warn"]
