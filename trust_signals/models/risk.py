from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FlagReason(StrEnum):
    phishing = "phishing"
    scam = "scam"
    malware = "malware"
    fake_news = "fake_news"
    ai_generated_content = "ai_generated_content"
    misinformation = "misinformation"
    hate_speech = "hate_speech"
    violence = "violence"
    illegal_content = "illegal_content"
    copyright_infringement = "copyright_infringement"
    explicit_content = "explicit_content"
    spam = "spam"
    identity_theft = "identity_theft"
    financial_fraud = "financial_fraud"
    cyberbullying = "cyberbullying"
    privacy_violation = "privacy_violation"
    impersonation = "impersonation"
    harmful_downloads = "harmful_downloads"
    unauthorized_data_collection = "unauthorized_data_collection"
    deceptive_marketing = "deceptive_marketing"
    extremism = "extremism"
    self_harm_promotion = "self_harm_promotion"
    drug_trafficking = "drug_trafficking"
    counterfeit_goods = "counterfeit_goods"
    unethical_practices = "unethical_practices"
    other = "other"


# Severity added to flags_cumulative_weight per report.
FLAG_REASON_WEIGHTS: dict[FlagReason, float] = {
    FlagReason.phishing: 1.5,
    FlagReason.scam: 1.5,
    FlagReason.malware: 2.0,
    FlagReason.fake_news: 1.2,
    FlagReason.ai_generated_content: 1.2,
    FlagReason.misinformation: 1.2,
    FlagReason.hate_speech: 1.3,
    FlagReason.violence: 1.4,
    FlagReason.illegal_content: 1.8,
    FlagReason.copyright_infringement: 1.1,
    FlagReason.explicit_content: 1.2,
    FlagReason.spam: 1.0,
    FlagReason.identity_theft: 1.7,
    FlagReason.financial_fraud: 1.6,
    FlagReason.cyberbullying: 1.3,
    FlagReason.privacy_violation: 1.4,
    FlagReason.impersonation: 1.5,
    FlagReason.harmful_downloads: 1.9,
    FlagReason.unauthorized_data_collection: 1.3,
    FlagReason.deceptive_marketing: 1.2,
    FlagReason.extremism: 1.5,
    FlagReason.self_harm_promotion: 1.6,
    FlagReason.drug_trafficking: 1.7,
    FlagReason.counterfeit_goods: 1.2,
    FlagReason.unethical_practices: 1.1,
    FlagReason.other: 1.0,
}


def flag_weight(reason: FlagReason | str) -> float:
    return FLAG_REASON_WEIGHTS[FlagReason(reason)]


class RiskLevel(StrEnum):
    """Ordinal risk bucket. Compare with ``<``/``>=``; never by string value."""

    none = "none"
    low = "low"
    moderate = "moderate"
    high = "high"
    severe = "severe"

    @property
    def ordinal(self) -> int:
        return _RISK_LEVEL_ORDINALS[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.ordinal < other.ordinal

    def __le__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.ordinal <= other.ordinal

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.ordinal > other.ordinal

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.ordinal >= other.ordinal


_RISK_LEVEL_ORDINALS: dict[RiskLevel, int] = {
    RiskLevel.none: 0,
    RiskLevel.low: 1,
    RiskLevel.moderate: 2,
    RiskLevel.high: 3,
    RiskLevel.severe: 4,
}

# Slider positions used by settings surfaces.
RISK_LEVEL_VALUES: dict[RiskLevel, int] = {
    RiskLevel.none: 0,
    RiskLevel.low: 25,
    RiskLevel.moderate: 50,
    RiskLevel.high: 75,
    RiskLevel.severe: 100,
}


class FlagTelemetry(BaseModel):
    """Snapshot of abuse-flag counters for one monitored resource.

    The backend may return a partial record, so every counter is optional.
    Scoring treats a partial record as "do not assess" rather than an error.
    """

    model_config = ConfigDict(frozen=True)

    flag_count: int | None = Field(default=None, ge=0)
    flags_cumulative_weight: float | None = Field(default=None, ge=0.0)
    impressions: int | None = Field(default=None, ge=0)
    first_flag_at: datetime | None = None
    last_flag_at: datetime | None = None
    impressions_since_last_flag: int | None = Field(default=None, ge=0)
    flag_distribution: dict[FlagReason, int] = Field(default_factory=dict)

    @field_validator("first_flag_at", "last_flag_at")
    @classmethod
    def _ensure_timezone_aware(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
            raise ValueError("flag timestamps must be timezone-aware")
        return value

    @field_validator("flag_distribution")
    @classmethod
    def _non_negative_counts(cls, value: dict[FlagReason, int]) -> dict[FlagReason, int]:
        for reason, count in value.items():
            if count < 0:
                raise ValueError(f"flag_distribution[{reason}] must be non-negative")
        return value

    @model_validator(mode="after")
    def _validate_invariants(self) -> FlagTelemetry:
        if (
            self.flag_count is not None
            and self.impressions is not None
            and self.flag_count > self.impressions
        ):
            raise ValueError("flag_count must not exceed impressions")
        if (
            self.first_flag_at is not None
            and self.last_flag_at is not None
            and self.last_flag_at < self.first_flag_at
        ):
            raise ValueError("last_flag_at must not precede first_flag_at")
        return self

    def is_complete(self) -> bool:
        return (
            self.flag_count is not None
            and self.flags_cumulative_weight is not None
            and self.impressions is not None
            and self.impressions > 0
        )


class RiskAssessment(BaseModel):
    """Derived on every fetch; never persisted."""

    model_config = ConfigDict(frozen=True)

    base_score: float = Field(default=0.0, ge=0.0, le=1.0)
    temporal_score: float = Field(default=0.0, ge=0.0, le=1.0)
    level: RiskLevel = RiskLevel.none
    top_reason: FlagReason | None = None
    assessed: bool = True

    @classmethod
    def unassessed(cls) -> RiskAssessment:
        return cls(assessed=False)


__all__ = [
    "FLAG_REASON_WEIGHTS",
    "FlagReason",
    "FlagTelemetry",
    "RISK_LEVEL_VALUES",
    "RiskAssessment",
    "RiskLevel",
    "flag_weight",
]
