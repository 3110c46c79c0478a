from __future__ import annotations

from typing import Protocol, runtime_checkable

from trust_signals.models.risk import FlagTelemetry, RiskLevel
from trust_signals.models.votes import VoteableEntity, VoteFailure, VoteType


@runtime_checkable
class FlagTelemetrySource(Protocol):
    async def fetch_flag_telemetry(self, resource_key: str) -> FlagTelemetry | None: ...


@runtime_checkable
class VoteBackend(Protocol):
    async def commit_vote(self, entity_id: str, vote: VoteType) -> VoteType:
        """Record ``vote`` for the viewer and return what the backend now holds.

        Must be idempotent: sending the same value twice is a no-op.
        """
        ...

    async def fetch_voteable_entity(self, entity_id: str) -> VoteableEntity: ...

    async def fetch_viewer_vote(self, entity_id: str) -> VoteType: ...


@runtime_checkable
class ThresholdPreferenceSource(Protocol):
    def get_user_threshold_preference(self) -> RiskLevel: ...


@runtime_checkable
class FailureNotifier(Protocol):
    def notify_failure(self, failure: VoteFailure) -> None: ...


__all__ = [
    "FailureNotifier",
    "FlagTelemetrySource",
    "ThresholdPreferenceSource",
    "VoteBackend",
]
