"""Shared, reference-counted vote state keyed by entity id.

A feed card and a standalone view of the same comment acquire the same
committer, so both render one optimistic count and the backend still sees a
single debounced write. The committer is dropped when the last mount point
releases it; anything still pending is flushed first, not discarded.
"""

from __future__ import annotations

import asyncio
import logging

from trust_signals.config import VoteCommitConfig
from trust_signals.errors import UnknownEntityError
from trust_signals.models.votes import CommitPhase, VoteableEntity, VoteType
from trust_signals.protocols.backends import FailureNotifier, VoteBackend
from trust_signals.votes.committer import VoteCommitter
from trust_signals.votes.reconciliation import ReconciliationGate

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("committer", "refs")

    def __init__(self, committer: VoteCommitter) -> None:
        self.committer = committer
        self.refs = 0


class VoteStateRegistry:
    def __init__(
        self,
        backend: VoteBackend,
        *,
        config: VoteCommitConfig | None = None,
        notifier: FailureNotifier | None = None,
    ) -> None:
        self._backend = backend
        self._config = config or VoteCommitConfig()
        self._notifier = notifier
        self._gate = ReconciliationGate(backend, fetch_timeout_s=self._config.commit_timeout_s)
        self._entries: dict[str, _Entry] = {}
        self._draining: dict[str, VoteCommitter] = {}
        self._closing: set[asyncio.Task[None]] = set()

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def acquire(
        self,
        entity_id: str,
        *,
        entity: VoteableEntity | None = None,
        viewer_vote: VoteType | None = None,
    ) -> VoteCommitter:
        """Return the shared committer for ``entity_id``, creating it on first use.

        Seed values only apply when the committer is created; later mounts
        share whatever state is already live.
        """
        entry = self._entries.get(entity_id)
        if entry is None and entity_id in self._draining:
            # Re-mounted while the last write drains; reuse it to keep one writer per entity.
            entry = _Entry(self._draining.pop(entity_id))
            self._entries[entity_id] = entry
        if entry is None:
            committer = VoteCommitter(
                entity_id,
                self._backend,
                config=self._config,
                notifier=self._notifier,
                gate=self._gate,
                entity=entity,
                viewer_vote=viewer_vote or VoteType.none,
            )
            entry = _Entry(committer)
            self._entries[entity_id] = entry
        entry.refs += 1
        return entry.committer

    def get(self, entity_id: str) -> VoteCommitter:
        entry = self._entries.get(entity_id)
        if entry is None:
            raise UnknownEntityError(entity_id)
        return entry.committer

    def refcount(self, entity_id: str) -> int:
        entry = self._entries.get(entity_id)
        return 0 if entry is None else entry.refs

    def release(self, entity_id: str) -> None:
        entry = self._entries.get(entity_id)
        if entry is None:
            raise UnknownEntityError(entity_id)
        entry.refs -= 1
        if entry.refs > 0:
            return

        del self._entries[entity_id]
        if entry.committer.phase == CommitPhase.idle:
            return
        task = asyncio.get_running_loop().create_task(
            entry.committer.close(),
            name=f"vote-release:{entity_id}",
        )
        self._draining[entity_id] = entry.committer
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)
        task.add_done_callback(lambda _: self._forget_drained(entity_id, entry.committer))
        logger.debug("Released %s with a write outstanding; flushing in background", entity_id)

    def _forget_drained(self, entity_id: str, committer: VoteCommitter) -> None:
        if self._draining.get(entity_id) is committer:
            del self._draining[entity_id]

    async def aclose(self) -> None:
        """Flush every committer and wait for all outstanding writes."""
        entries = list(self._entries.values())
        self._entries.clear()
        await asyncio.gather(*(entry.committer.close() for entry in entries))
        if self._closing:
            await asyncio.gather(*self._closing)


__all__ = ["VoteStateRegistry"]
