"""Error taxonomy for the trust signal engine.

Every failure here is recovered locally: risk assessment degrades to "do not
warn", and vote writes roll back to the last committed state.
"""

from __future__ import annotations


class TrustSignalError(Exception):
    """Base class for engine errors."""


class InsufficientDataError(TrustSignalError):
    """Telemetry is too incomplete to score. Never surfaced to the user."""


class NetworkFailureError(TrustSignalError):
    """A backend write or fetch failed."""


class RetryableCommitError(NetworkFailureError):
    """Transient write failure; the committer may retry within its budget."""


class TerminalCommitError(NetworkFailureError):
    """Write rejected for good; rollback without retrying."""


class StaleWriteTimeoutError(NetworkFailureError):
    """The outer commit timeout fired before the backend answered."""


class UnknownEntityError(KeyError):
    """No vote control has mounted the requested entity."""


__all__ = [
    "InsufficientDataError",
    "NetworkFailureError",
    "RetryableCommitError",
    "StaleWriteTimeoutError",
    "TerminalCommitError",
    "TrustSignalError",
    "UnknownEntityError",
]
