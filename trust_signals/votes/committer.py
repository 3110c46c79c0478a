"""Debounced, optimistic vote commits for a single entity.

The viewer sees every toggle immediately. The backend sees at most one write
per quiet period, carrying only the final vote, and never two writes at once.

State machine::

    idle --toggle--> pending --quiet period--> in_flight --settle--> idle
                      ^   |                        |
                      +---+ toggle restarts timer  +-- toggles queued, replayed on settle

A quiet period that ends with the displayed vote equal to the committed vote
goes straight back to ``idle`` without touching the network.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from trust_signals.config import VoteCommitConfig
from trust_signals.core.logging import correlation_scope
from trust_signals.core.metrics import (
    VOTE_COALESCED_TOTAL,
    VOTE_COMMITS_TOTAL,
    VOTE_ROLLBACKS_TOTAL,
    VOTE_TOGGLES_TOTAL,
    observe_commit_duration,
)
from trust_signals.core.telemetry import get_tracer
from trust_signals.errors import RetryableCommitError, StaleWriteTimeoutError
from trust_signals.models.votes import (
    ClientVoteState,
    CommitPhase,
    ReconciliationOutcome,
    VoteableEntity,
    VoteFailure,
    VoteFailureKind,
    VoteType,
)
from trust_signals.protocols.backends import FailureNotifier, VoteBackend
from trust_signals.votes.reconciliation import ReconciliationGate
from trust_signals.votes.resolver import resolve, vote_delta

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

StateListener = Callable[[ClientVoteState], None]


class VoteCommitter:
    """Owns the ``ClientVoteState`` of one entity for one viewer.

    All methods must be called from the event loop that runs the committer.
    ``toggle`` is synchronous and never blocks; the network work happens in
    background tasks owned by this object.
    """

    def __init__(
        self,
        entity_id: str,
        backend: VoteBackend,
        *,
        config: VoteCommitConfig | None = None,
        notifier: FailureNotifier | None = None,
        gate: ReconciliationGate | None = None,
        entity: VoteableEntity | None = None,
        viewer_vote: VoteType = VoteType.none,
    ) -> None:
        self._entity_id = entity_id
        self._backend = backend
        self._config = config or VoteCommitConfig()
        self._notifier = notifier
        self._gate = gate or ReconciliationGate(
            backend, fetch_timeout_s=self._config.commit_timeout_s
        )

        self._committed_vote = VoteType(viewer_vote)
        self._confirmed_score = entity.score if entity is not None else 0
        self._displayed_vote = self._committed_vote
        self._displayed_score = self._confirmed_score
        self._phase = CommitPhase.idle

        self._timer: asyncio.Task[None] | None = None
        self._timer_is_flush = False
        self._flight: asyncio.Task[None] | None = None
        self._queued: list[VoteType] = []
        self._listeners: list[StateListener] = []
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def entity_id(self) -> str:
        return self._entity_id

    @property
    def phase(self) -> CommitPhase:
        return self._phase

    @property
    def state(self) -> ClientVoteState:
        return ClientVoteState(
            entity_id=self._entity_id,
            displayed_vote=self._displayed_vote,
            displayed_score=self._displayed_score,
            committed_vote=self._committed_vote,
            confirmed_score=self._confirmed_score,
            phase=self._phase,
        )

    # -- observation --------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener for state snapshots. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self) -> None:
        snapshot = self.state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Vote state listener failed for %s", self._entity_id)

    # -- seeding ------------------------------------------------------------

    def seed(self, entity: VoteableEntity | None = None, viewer_vote: VoteType | None = None) -> bool:
        """Adopt server state fetched after the control mounted.

        While ``idle`` the server state replaces everything. While ``pending``
        the viewer's displayed intent is kept and rebased onto the fetched
        state. While ``in_flight`` the seed is ignored; reconciliation will
        settle the entity instead.
        """
        if self._phase == CommitPhase.in_flight:
            logger.debug("Ignoring seed for %s while a write is in flight", self._entity_id)
            return False

        if entity is not None:
            self._confirmed_score = entity.score
        if viewer_vote is not None:
            self._committed_vote = VoteType(viewer_vote)
        if self._phase == CommitPhase.idle:
            self._displayed_vote = self._committed_vote
        self._displayed_score = self._confirmed_score + vote_delta(
            self._committed_vote, self._displayed_vote
        )
        self._publish()
        return True

    # -- toggling -----------------------------------------------------------

    def toggle(self, requested: VoteType) -> None:
        requested = VoteType(requested)
        if self._phase == CommitPhase.in_flight:
            if requested == VoteType.none:
                raise ValueError("requested vote must be upvote or downvote")
            self._queued.append(requested)
            logger.debug("Queued %s for %s until the in-flight write settles", requested, self._entity_id)
            return

        resolution = resolve(self._displayed_vote, requested)
        self._displayed_vote = resolution.next
        self._displayed_score += resolution.delta
        VOTE_TOGGLES_TOTAL.labels(vote=requested.value).inc()

        self._schedule(self._config.quiet_period_s)
        self._phase = CommitPhase.pending
        self._idle.clear()
        self._publish()

    def flush(self) -> asyncio.Future[None] | None:
        """End the quiet period now. Returns an awaitable for the write, if any.

        The awaitable is shielded: cancelling it, or bounding it with
        ``asyncio.wait_for``, never cancels the write itself.
        """
        if self._phase == CommitPhase.pending:
            timer = self._timer
            if timer is None or not self._timer_is_flush:
                timer = self._schedule(0.0)
                self._timer_is_flush = True
            return asyncio.shield(timer)
        if self._phase == CommitPhase.in_flight and self._flight is not None:
            return asyncio.shield(self._flight)
        return None

    async def wait_idle(self) -> None:
        await self._idle.wait()

    async def close(self) -> None:
        """Flush pending intent and wait until nothing is left to send."""
        while (task := self.flush()) is not None:
            # A toggle can still replace the flush timer; wait() neither raises on that
            # nor cancels the write if close() itself is cancelled.
            await asyncio.wait({task})

    # -- timer --------------------------------------------------------------

    def _schedule(self, delay: float) -> asyncio.Task[None]:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer_is_flush = False
        self._timer = asyncio.get_running_loop().create_task(
            self._run_after(delay),
            name=f"vote-commit:{self._entity_id}",
        )
        return self._timer

    async def _run_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        # Past this point the task is no longer a cancellable timer.
        self._timer = None

        if self._displayed_vote == self._committed_vote:
            logger.debug("Vote on %s returned to its committed value; nothing to send", self._entity_id)
            VOTE_COALESCED_TOTAL.inc()
            self._phase = CommitPhase.idle
            self._idle.set()
            self._publish()
            return

        self._phase = CommitPhase.in_flight
        self._flight = asyncio.current_task()
        self._publish()
        await self._commit(self._displayed_vote)

    # -- commit -------------------------------------------------------------

    async def _commit(self, vote: VoteType) -> None:
        with correlation_scope(entity_id=self._entity_id):
            try:
                with _tracer.start_as_current_span("trust_signals.commit_vote") as span:
                    span.set_attribute("entity_id", self._entity_id)
                    span.set_attribute("vote", vote.value)
                    with observe_commit_duration():
                        returned = await self._send(vote)
            except asyncio.CancelledError as exc:
                self._rollback(vote, exc)
                raise
            except Exception as exc:
                self._rollback(vote, exc)
            else:
                VOTE_COMMITS_TOTAL.labels(outcome="success").inc()
                await self._settle(vote, returned)
            finally:
                self._flight = None
                self._phase = CommitPhase.idle
                self._replay_queued()
                if self._phase == CommitPhase.idle:
                    self._idle.set()
                self._publish()

    async def _send(self, vote: VoteType) -> VoteType:
        retries = 0
        while True:
            try:
                returned = await asyncio.wait_for(
                    self._backend.commit_vote(self._entity_id, vote),
                    timeout=self._config.commit_timeout_s,
                )
            except TimeoutError as exc:
                VOTE_COMMITS_TOTAL.labels(outcome="timeout").inc()
                raise StaleWriteTimeoutError(
                    f"commit_vote for {self._entity_id} did not finish within "
                    f"{self._config.commit_timeout_s}s"
                ) from exc
            except RetryableCommitError:
                if retries >= self._config.max_commit_retries:
                    raise
                retries += 1
                delay = self._config.backoff_delay(retries)
                VOTE_COMMITS_TOTAL.labels(outcome="retry").inc()
                logger.info(
                    "Retrying vote commit for %s in %.2fs (attempt %d)", self._entity_id, delay, retries + 1
                )
                await asyncio.sleep(delay)
                continue
            return VoteType(returned)

    def _rollback(self, attempted: VoteType, exc: BaseException) -> None:
        kind = (
            VoteFailureKind.stale_write_timeout
            if isinstance(exc, StaleWriteTimeoutError)
            else VoteFailureKind.network_failure
        )
        logger.warning(
            "Vote commit for %s failed (%s); rolling back to %s",
            self._entity_id,
            kind.value,
            self._committed_vote.value,
            exc_info=exc,
        )
        VOTE_COMMITS_TOTAL.labels(outcome="failure").inc()
        VOTE_ROLLBACKS_TOTAL.labels(kind=kind.value).inc()

        self._displayed_vote = self._committed_vote
        self._displayed_score = self._confirmed_score
        self._report(kind, attempted, str(exc) or type(exc).__name__)

    async def _settle(self, sent: VoteType, returned: VoteType) -> None:
        self._confirmed_score += vote_delta(self._committed_vote, sent)
        self._committed_vote = sent

        result = await self._gate.reconcile(self._entity_id, sent, returned)
        if result.outcome == ReconciliationOutcome.refetched and result.entity is not None:
            self._confirmed_score = result.entity.score
            self._committed_vote = result.viewer_vote
        elif result.outcome == ReconciliationOutcome.fetch_failed:
            # Take the backend's word for the vote; the score stays advisory.
            self._confirmed_score += vote_delta(self._committed_vote, result.viewer_vote)
            self._committed_vote = result.viewer_vote
            self._report(
                VoteFailureKind.reconciliation_fetch_failed,
                sent,
                "could not refresh the vote count after a conflicting write",
            )

        self._displayed_vote = self._committed_vote
        self._displayed_score = self._confirmed_score

    def _replay_queued(self) -> None:
        queued, self._queued = self._queued, []
        for requested in queued:
            self.toggle(requested)

    def _report(self, kind: VoteFailureKind, attempted: VoteType, message: str) -> None:
        if self._notifier is None:
            return
        failure = VoteFailure(
            entity_id=self._entity_id,
            kind=kind,
            message=message,
            attempted_vote=attempted,
        )
        try:
            self._notifier.notify_failure(failure)
        except Exception:
            logger.exception("Failure notifier raised for %s", self._entity_id)


__all__ = ["StateListener", "VoteCommitter"]
