"""Post-commit check against the authoritative backend state.

A mismatch between the vote we sent and the vote the backend recorded means
the same viewer voted through another client in the meantime. We never try
to merge the two locally: the entity is re-fetched and whatever the backend
says wins.
"""

from __future__ import annotations

import asyncio
import logging

from trust_signals.core.metrics import VOTE_RECONCILIATIONS_TOTAL
from trust_signals.core.telemetry import get_tracer
from trust_signals.models.votes import ReconciliationOutcome, ReconciliationResult, VoteType
from trust_signals.protocols.backends import VoteBackend

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


class ReconciliationGate:
    def __init__(self, backend: VoteBackend, *, fetch_timeout_s: float = 10.0) -> None:
        if fetch_timeout_s <= 0:
            raise ValueError("fetch_timeout_s must be positive")
        self._backend = backend
        self._fetch_timeout_s = fetch_timeout_s

    async def reconcile(
        self,
        entity_id: str,
        sent: VoteType,
        returned: VoteType,
    ) -> ReconciliationResult:
        if returned == sent:
            VOTE_RECONCILIATIONS_TOTAL.labels(outcome=ReconciliationOutcome.confirmed.value).inc()
            return ReconciliationResult(outcome=ReconciliationOutcome.confirmed, viewer_vote=sent)

        logger.info(
            "Backend recorded %s after we sent %s; re-fetching %s",
            returned.value,
            sent.value,
            entity_id,
        )
        with _tracer.start_as_current_span("trust_signals.reconcile") as span:
            span.set_attribute("entity_id", entity_id)
            try:
                entity, viewer_vote = await asyncio.wait_for(
                    asyncio.gather(
                        self._backend.fetch_voteable_entity(entity_id),
                        self._backend.fetch_viewer_vote(entity_id),
                    ),
                    timeout=self._fetch_timeout_s,
                )
            except Exception:
                logger.warning("Reconciliation fetch failed for %s", entity_id, exc_info=True)
                VOTE_RECONCILIATIONS_TOTAL.labels(
                    outcome=ReconciliationOutcome.fetch_failed.value
                ).inc()
                return ReconciliationResult(
                    outcome=ReconciliationOutcome.fetch_failed,
                    viewer_vote=returned,
                )

        VOTE_RECONCILIATIONS_TOTAL.labels(outcome=ReconciliationOutcome.refetched.value).inc()
        return ReconciliationResult(
            outcome=ReconciliationOutcome.refetched,
            viewer_vote=VoteType(viewer_vote),
            entity=entity,
        )


__all__ = ["ReconciliationGate"]
