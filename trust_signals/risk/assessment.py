from __future__ import annotations

import logging
from datetime import UTC, datetime

from trust_signals.config import RiskScoringConfig
from trust_signals.core.metrics import RISK_ASSESSMENTS_TOTAL
from trust_signals.errors import InsufficientDataError
from trust_signals.models.risk import FlagTelemetry, RiskAssessment
from trust_signals.risk.levels import classify
from trust_signals.risk.scoring import compute_base_score, compute_temporal_score, top_reason

logger = logging.getLogger(__name__)


def assess_risk(
    telemetry: FlagTelemetry | None,
    now: datetime | None = None,
    config: RiskScoringConfig | None = None,
) -> RiskAssessment:
    """Score a telemetry snapshot. Never raises for missing or partial data."""
    cfg = config or RiskScoringConfig()
    now_utc = now if now is not None else datetime.now(UTC)

    if telemetry is None:
        RISK_ASSESSMENTS_TOTAL.labels(level="unassessed").inc()
        return RiskAssessment.unassessed()

    try:
        base = compute_base_score(telemetry)
    except InsufficientDataError as exc:
        logger.debug("Skipping risk assessment: %s", exc)
        RISK_ASSESSMENTS_TOTAL.labels(level="unassessed").inc()
        return RiskAssessment.unassessed()

    temporal = compute_temporal_score(base, telemetry, now_utc, cfg)
    level = classify(temporal, cfg.thresholds)
    RISK_ASSESSMENTS_TOTAL.labels(level=level.value).inc()
    return RiskAssessment(
        base_score=base,
        temporal_score=temporal,
        level=level,
        top_reason=top_reason(telemetry.flag_distribution),
    )


__all__ = ["assess_risk"]
