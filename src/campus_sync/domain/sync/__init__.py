"""Reconciliation engine mirroring source records into the store."""

from __future__ import annotations

from .cleanup import CleanupReport, clean_obviated
from .errors import (
    InvalidSchoolScopeError,
    SyncError,
    SyncPhaseError,
    UnresolvedReferenceError,
)
from .keys import CourseKeys, SchoolKeys
from .orchestrator import SyncOrchestrator, SyncReport, parse_scope
from .phase import PhaseResult, SyncKind

__all__ = [
    "CleanupReport",
    "CourseKeys",
    "InvalidSchoolScopeError",
    "PhaseResult",
    "SchoolKeys",
    "SyncError",
    "SyncKind",
    "SyncOrchestrator",
    "SyncPhaseError",
    "SyncReport",
    "UnresolvedReferenceError",
    "clean_obviated",
    "parse_scope",
]
