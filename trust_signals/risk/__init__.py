from trust_signals.risk.assessment import assess_risk
from trust_signals.risk.levels import classify, meets_threshold, should_warn
from trust_signals.risk.scoring import (
    compute_base_score,
    compute_temporal_score,
    should_churn_flag_info,
    top_reason,
)

__all__ = [
    "assess_risk",
    "classify",
    "compute_base_score",
    "compute_temporal_score",
    "meets_threshold",
    "should_churn_flag_info",
    "should_warn",
    "top_reason",
]
