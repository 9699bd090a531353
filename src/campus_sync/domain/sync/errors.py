"""Error taxonomy of a synchronization run."""

from __future__ import annotations

RECORD_ERRORS: tuple[type[Exception], ...] = (ValueError, LookupError, TypeError)
"""Exceptions that reject a single source record without aborting its phase.

Anything else (for example a lost database connection) aborts the phase.
"""


class SyncError(RuntimeError):
    """Base class for synchronization failures."""


class InvalidSchoolScopeError(SyncError, ValueError):
    """Raised before any phase starts when the requested school is malformed."""


class UnresolvedReferenceError(SyncError, LookupError):
    """Raised when a record names a prerequisite entity absent from this run."""


class SyncPhaseError(SyncError):
    """Raised when a phase fails as a whole; the original error is the cause."""

    def __init__(self, phase: str, message: str) -> None:
        super().__init__(f"{phase} synchronization failed: {message}")
        self.phase = phase
