from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from trust_signals.models.risk import RiskLevel

ENV_PREFIX = "TRUST_SIGNALS_"


class RiskThresholds(BaseModel):
    """Lower bounds (inclusive) of each non-``none`` risk level on a [0, 1] score."""

    low: float = 0.01
    moderate: float = 0.05
    high: float = 0.20
    severe: float = 0.50

    @model_validator(mode="after")
    def _validate_staircase(self) -> RiskThresholds:
        cuts = [self.low, self.moderate, self.high, self.severe]
        if not all(0.0 < cut <= 1.0 for cut in cuts):
            raise ValueError("risk thresholds must lie in (0, 1]")
        if any(lower >= upper for lower, upper in zip(cuts, cuts[1:], strict=False)):
            raise ValueError("risk thresholds must be strictly increasing")
        return self

    def cut_points(self) -> list[tuple[float, RiskLevel]]:
        """Cut points in descending order, for a top-down scan."""
        return [
            (self.severe, RiskLevel.severe),
            (self.high, RiskLevel.high),
            (self.moderate, RiskLevel.moderate),
            (self.low, RiskLevel.low),
        ]


class RiskScoringConfig(BaseModel):
    """Decay tuning for the temporal score.

    The score falls by a factor of e for every ``time_decay_days`` since the
    last flag and for every ``impression_decay_count`` clean impressions.
    """

    time_decay_days: float = Field(default=180.0, gt=0)
    impression_decay_count: float = Field(default=5_000.0, gt=0)
    churn_after_days: float = Field(default=180.0, gt=0)
    thresholds: RiskThresholds = Field(default_factory=RiskThresholds)

    @property
    def time_decay_rate(self) -> float:
        return 1.0 / self.time_decay_days

    @property
    def impression_decay_rate(self) -> float:
        return 1.0 / self.impression_decay_count


class VoteCommitConfig(BaseModel):
    quiet_period_s: float = Field(default=5.0, gt=0)
    commit_timeout_s: float = Field(default=10.0, gt=0)
    max_commit_retries: int = Field(default=1, ge=0, le=5)
    retry_backoff_s: float = Field(default=0.5, ge=0)
    retry_backoff_max_s: float = Field(default=5.0, ge=0)

    def backoff_delay(self, retry_number: int) -> float:
        """Exponential backoff with cap before retry ``retry_number`` (1-based)."""
        delay = self.retry_backoff_s * (2 ** max(retry_number - 1, 0))
        return min(delay, self.retry_backoff_max_s)


class SafetyConfig(BaseModel):
    """Default website-warning preference for viewers who never set one."""

    warning_enabled: bool = True
    warn_at: RiskLevel = RiskLevel.moderate


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    json_logs: bool = False
    tracing_endpoint: str | None = None
    env: str = "dev"


class TrustSignalSettings(BaseSettings):
    risk: RiskScoringConfig = Field(default_factory=RiskScoringConfig)
    votes: VoteCommitConfig = Field(default_factory=VoteCommitConfig)
    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        extra="ignore",
    )


def _coerce_env_value(value: str) -> object:
    parsed = yaml.safe_load(value)
    return value if parsed is None else parsed


def _set_nested(mapping: dict[str, object], path: list[str], value: object) -> None:
    current = mapping
    for key in path[:-1]:
        existing = current.get(key)
        if not isinstance(existing, dict):
            existing = {}
            current[key] = existing
        current = existing
    current[path[-1]] = value


def _apply_env_overrides(data: dict[str, object]) -> dict[str, object]:
    merged = dict(data)
    for key, raw_value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        path = key[len(ENV_PREFIX) :].lower().split("__")
        _set_nested(merged, path, _coerce_env_value(raw_value))
    return merged


def load_config(path: str | Path = "config/trust_signals.yaml") -> TrustSignalSettings:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"config file not found: {config_path}")

    loaded = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(loaded, dict):
        raise ValueError("config file must contain a top-level mapping")

    raw = loaded.get("trust_signals", loaded)
    if not isinstance(raw, dict):
        raise ValueError("trust_signals config section must be a mapping")

    merged = _apply_env_overrides(raw)
    return TrustSignalSettings.model_validate(merged)


__all__ = [
    "ObservabilityConfig",
    "RiskScoringConfig",
    "RiskThresholds",
    "SafetyConfig",
    "TrustSignalSettings",
    "VoteCommitConfig",
    "load_config",
]
