"""Facade the UI surfaces talk to.

Risk assessment is pure and synchronous; vote toggles are fire-and-forget and
observed through ``VoteCommitter.subscribe``.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from trust_signals.config import ObservabilityConfig, TrustSignalSettings
from trust_signals.core.logging import correlation_scope, setup_logging
from trust_signals.core.metrics import RISK_WARNINGS_TOTAL
from trust_signals.core.telemetry import init_tracing, shutdown_tracing
from trust_signals.models.risk import FlagTelemetry, RiskAssessment, RiskLevel
from trust_signals.models.votes import ClientVoteState, VoteType
from trust_signals.protocols.backends import (
    FailureNotifier,
    FlagTelemetrySource,
    ThresholdPreferenceSource,
    VoteBackend,
)
from trust_signals.risk.assessment import assess_risk
from trust_signals.risk.levels import should_warn
from trust_signals.votes.committer import VoteCommitter
from trust_signals.votes.registry import VoteStateRegistry

logger = logging.getLogger(__name__)


def configure_observability(config: ObservabilityConfig) -> None:
    setup_logging(config.log_level, json_output=config.json_logs)
    init_tracing(env=config.env, endpoint=config.tracing_endpoint)


class TrustSignalEngine:
    def __init__(
        self,
        *,
        vote_backend: VoteBackend,
        telemetry_source: FlagTelemetrySource | None = None,
        preferences: ThresholdPreferenceSource | None = None,
        notifier: FailureNotifier | None = None,
        settings: TrustSignalSettings | None = None,
    ) -> None:
        self._settings = settings or TrustSignalSettings()
        self._vote_backend = vote_backend
        self._telemetry_source = telemetry_source
        self._preferences = preferences
        self._votes = VoteStateRegistry(
            vote_backend,
            config=self._settings.votes,
            notifier=notifier,
        )

    @property
    def settings(self) -> TrustSignalSettings:
        return self._settings

    @property
    def votes(self) -> VoteStateRegistry:
        return self._votes

    # -- risk ---------------------------------------------------------------

    def assess_risk(self, telemetry: FlagTelemetry | None, now: datetime | None = None) -> RiskAssessment:
        return assess_risk(telemetry, now, self._settings.risk)

    def threshold_preference(self) -> RiskLevel:
        if self._preferences is not None:
            return RiskLevel(self._preferences.get_user_threshold_preference())
        return self._settings.safety.warn_at

    def should_warn(
        self,
        assessment: RiskAssessment,
        threshold_preference: RiskLevel | None = None,
    ) -> bool:
        threshold = (
            threshold_preference if threshold_preference is not None else self.threshold_preference()
        )
        return should_warn(
            assessment,
            threshold,
            enabled=self._settings.safety.warning_enabled,
        )

    async def assess_resource(self, resource_key: str, now: datetime | None = None) -> RiskAssessment:
        """Fetch telemetry and score it. A failed fetch is treated as no data.

        Each fetched assessment that crosses the viewer's threshold counts once
        toward ``trust_risk_warnings_total``.
        """
        if self._telemetry_source is None:
            raise RuntimeError("no FlagTelemetrySource configured")
        now_utc = now if now is not None else datetime.now(UTC)
        with correlation_scope(resource_key=resource_key):
            try:
                telemetry = await self._telemetry_source.fetch_flag_telemetry(resource_key)
            except Exception:
                logger.warning("Flag telemetry fetch failed for %s", resource_key, exc_info=True)
                return RiskAssessment.unassessed()
            assessment = self.assess_risk(telemetry, now_utc)
            if self.should_warn(assessment):
                RISK_WARNINGS_TOTAL.inc()
            return assessment

    # -- votes --------------------------------------------------------------

    async def mount_vote(self, entity_id: str) -> VoteCommitter:
        """Acquire the shared committer, hydrating it from the backend on first mount."""
        first_mount = entity_id not in self._votes
        committer = self._votes.acquire(entity_id)
        if first_mount:
            await self._hydrate(committer)
        return committer

    async def _hydrate(self, committer: VoteCommitter) -> None:
        entity_id = committer.entity_id
        with correlation_scope(entity_id=entity_id):
            try:
                entity, viewer_vote = await asyncio.wait_for(
                    asyncio.gather(
                        self._vote_backend.fetch_voteable_entity(entity_id),
                        self._vote_backend.fetch_viewer_vote(entity_id),
                    ),
                    timeout=self._settings.votes.commit_timeout_s,
                )
            except Exception:
                # The control stays usable with a zero baseline until a later fetch.
                logger.warning("Could not hydrate vote state for %s", entity_id, exc_info=True)
                return
            committer.seed(entity=entity, viewer_vote=VoteType(viewer_vote))

    def unmount_vote(self, entity_id: str) -> None:
        self._votes.release(entity_id)

    def toggle_vote(self, entity_id: str, requested: VoteType) -> None:
        self._votes.get(entity_id).toggle(requested)

    def vote_state(self, entity_id: str) -> ClientVoteState:
        return self._votes.get(entity_id).state

    async def aclose(self) -> None:
        """Drain outstanding vote writes, then flush buffered spans."""
        await self._votes.aclose()
        shutdown_tracing()


__all__ = ["TrustSignalEngine", "configure_observability"]
