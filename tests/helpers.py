from __future__ import annotations

import asyncio

from trust_signals.models.votes import CommitPhase
from trust_signals.votes.committer import VoteCommitter


async def wait_for_phase(committer: VoteCommitter, phase: CommitPhase, timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while committer.phase != phase:
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout=timeout)


async def settle(committer: VoteCommitter, timeout: float = 1.0) -> None:
    await asyncio.wait_for(committer.wait_idle(), timeout=timeout)
