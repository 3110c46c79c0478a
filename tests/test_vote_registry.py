"""Tests for the shared, reference-counted per-entity vote state."""

from __future__ import annotations

import asyncio

import pytest
from trust_signals.config import VoteCommitConfig
from trust_signals.errors import UnknownEntityError
from trust_signals.models.votes import CommitPhase, VoteableEntity, VoteType
from trust_signals.votes.registry import VoteStateRegistry

from tests.fakes import FakeVoteBackend
from tests.helpers import settle

pytestmark = pytest.mark.asyncio


class TestSharing:
    async def test_mount_points_share_one_committer(
        self, backend: FakeVoteBackend, entity: VoteableEntity, fast_votes: VoteCommitConfig
    ) -> None:
        registry = VoteStateRegistry(backend, config=fast_votes)
        feed = registry.acquire("c1", entity=entity)
        standalone = registry.acquire("c1")

        assert feed is standalone
        assert registry.refcount("c1") == 2

        feed.toggle(VoteType.upvote)
        assert standalone.state.displayed_score == 9
        await settle(feed)
        assert backend.commits == [("c1", VoteType.upvote)]

    async def test_seed_only_applies_on_creation(
        self, backend: FakeVoteBackend, entity: VoteableEntity
    ) -> None:
        registry = VoteStateRegistry(backend)
        registry.acquire("c1", entity=entity, viewer_vote=VoteType.downvote)
        again = registry.acquire("c1", entity=VoteableEntity(id="c1", up_count=99), viewer_vote=VoteType.upvote)
        assert again.state.committed_vote == VoteType.downvote
        assert again.state.confirmed_score == 8

    async def test_unknown_entity(self, backend: FakeVoteBackend) -> None:
        registry = VoteStateRegistry(backend)
        with pytest.raises(UnknownEntityError):
            registry.get("missing")
        with pytest.raises(UnknownEntityError):
            registry.release("missing")


class TestRelease:
    async def test_entry_survives_until_last_release(self, backend: FakeVoteBackend) -> None:
        registry = VoteStateRegistry(backend)
        registry.acquire("c1")
        registry.acquire("c1")

        registry.release("c1")
        assert "c1" in registry
        registry.release("c1")
        assert "c1" not in registry
        assert len(registry) == 0

    async def test_last_release_flushes_pending_write(
        self, backend: FakeVoteBackend, entity: VoteableEntity
    ) -> None:
        registry = VoteStateRegistry(backend, config=VoteCommitConfig(quiet_period_s=30.0))
        committer = registry.acquire("c1", entity=entity)
        committer.toggle(VoteType.downvote)

        registry.release("c1")
        await asyncio.wait_for(registry.aclose(), timeout=1.0)

        assert backend.commits == [("c1", VoteType.downvote)]
        assert committer.phase == CommitPhase.idle

    async def test_aclose_drains_live_committers(
        self, backend: FakeVoteBackend, entity: VoteableEntity
    ) -> None:
        registry = VoteStateRegistry(backend, config=VoteCommitConfig(quiet_period_s=30.0))
        registry.acquire("c1", entity=entity).toggle(VoteType.upvote)

        await asyncio.wait_for(registry.aclose(), timeout=1.0)

        assert backend.commits == [("c1", VoteType.upvote)]
        assert len(registry) == 0

    async def test_remount_while_draining_reuses_committer(
        self, backend: FakeVoteBackend, entity: VoteableEntity
    ) -> None:
        registry = VoteStateRegistry(backend, config=VoteCommitConfig(quiet_period_s=30.0))
        first = registry.acquire("c1", entity=entity)
        first.toggle(VoteType.upvote)
        registry.release("c1")

        second = registry.acquire("c1")

        assert second is first
        await asyncio.wait_for(registry.aclose(), timeout=1.0)
        assert backend.commits == [("c1", VoteType.upvote)]
