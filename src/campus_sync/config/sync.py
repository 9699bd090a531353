"""Synchronization defaults for reconciliation runs."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_flag, env_int

DEFAULT_PAGE_SIZE = 100
DEFAULT_CLEANUP_AGE_DAYS = 30


@dataclass(frozen=True, slots=True)
class SyncConfig:
    verbose: bool = True
    page_size: int = DEFAULT_PAGE_SIZE
    cleanup_age_days: int = DEFAULT_CLEANUP_AGE_DAYS


def get_sync_config(*, verbose: bool | None = None) -> SyncConfig:
    return SyncConfig(
        verbose=env_flag("CAMPUS_SYNC_VERBOSE", default=True) if verbose is None else verbose,
        page_size=env_int("CAMPUS_SYNC_PAGE_SIZE", default=DEFAULT_PAGE_SIZE, minimum=1),
        cleanup_age_days=env_int(
            "CAMPUS_SYNC_CLEANUP_AGE_DAYS", default=DEFAULT_CLEANUP_AGE_DAYS
        ),
    )
