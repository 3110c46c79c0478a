from trust_signals.protocols.backends import (
    FailureNotifier,
    FlagTelemetrySource,
    ThresholdPreferenceSource,
    VoteBackend,
)

__all__ = [
    "FailureNotifier",
    "FlagTelemetrySource",
    "ThresholdPreferenceSource",
    "VoteBackend",
]
