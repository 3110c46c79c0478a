"""Flag telemetry → bounded, time-decaying danger score.

The base score rewards concentration of harm: a handful of severe reports on
a low-traffic site outweighs the same ratio spread over a huge audience. The
temporal score then heals that base along two axes, wall-clock time since the
last flag and clean impressions since the last flag.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime

from trust_signals.config import RiskScoringConfig
from trust_signals.errors import InsufficientDataError
from trust_signals.models.risk import FlagReason, FlagTelemetry, RiskLevel

_SECONDS_PER_DAY = 86_400.0


def _clamp_unit(value: float) -> float:
    return max(0.0, min(value, 1.0))


def _require_timezone_aware(value: datetime, field_name: str) -> None:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValueError(f"{field_name} must be timezone-aware")


def compute_base_score(telemetry: FlagTelemetry) -> float:
    if not telemetry.is_complete():
        raise InsufficientDataError(
            "flag_count, flags_cumulative_weight and a positive impressions count are required"
        )

    ratio = _clamp_unit(telemetry.flags_cumulative_weight / telemetry.impressions)  # type: ignore[operator]
    return _clamp_unit(ratio * math.log1p(telemetry.flag_count))  # type: ignore[arg-type]


def days_since_last_flag(telemetry: FlagTelemetry, now: datetime) -> float:
    """Elapsed days since the last flag; clock skew into the future counts as zero."""
    _require_timezone_aware(now, "now")
    if telemetry.last_flag_at is None:
        return 0.0
    elapsed = (now - telemetry.last_flag_at).total_seconds() / _SECONDS_PER_DAY
    return max(elapsed, 0.0)


def decay_factor(telemetry: FlagTelemetry, now: datetime, config: RiskScoringConfig) -> float:
    elapsed_days = days_since_last_flag(telemetry, now)
    clean_impressions = telemetry.impressions_since_last_flag or 0
    time_decay = math.exp(-config.time_decay_rate * elapsed_days)
    impression_decay = math.exp(-config.impression_decay_rate * clean_impressions)
    return time_decay * impression_decay


def compute_temporal_score(
    base: float,
    telemetry: FlagTelemetry,
    now: datetime,
    config: RiskScoringConfig | None = None,
) -> float:
    cfg = config or RiskScoringConfig()
    return _clamp_unit(_clamp_unit(base) * decay_factor(telemetry, now, cfg))


def top_reason(distribution: Mapping[FlagReason, int]) -> FlagReason | None:
    """Most-reported reason; ties go to whichever reason was seen first."""
    best: FlagReason | None = None
    best_count = 0
    for reason, count in distribution.items():
        if count > best_count:
            best, best_count = reason, count
    return best


def should_churn_flag_info(
    level: RiskLevel,
    last_flag_at: datetime,
    now: datetime,
    config: RiskScoringConfig | None = None,
) -> bool:
    """Whether a new flag should reset the stored counters instead of adding to them.

    Only sites that have healed to ``low`` or below after a long quiet period
    start over; anything still risky keeps its history.
    """
    cfg = config or RiskScoringConfig()
    _require_timezone_aware(last_flag_at, "last_flag_at")
    _require_timezone_aware(now, "now")
    quiet_days = (now - last_flag_at).total_seconds() / _SECONDS_PER_DAY
    return level <= RiskLevel.low and quiet_days >= cfg.churn_after_days


__all__ = [
    "compute_base_score",
    "compute_temporal_score",
    "days_since_last_flag",
    "decay_factor",
    "should_churn_flag_info",
    "top_reason",
]
